"""
Tests for the prompt clients and the run pipeline.
"""

import pytest
from pydantic import ValidationError

from Aether_Debug import functions
from Aether_Debug.functions import (
    clean_ai_output, extract_json_from_text,
    explain_error, suggest_code_fix, generate_code_from_description,
    run_code, run_code_streaming, run_agent_with_token_limit,
)
from Aether_Debug.models import EditorSession, ExecutionResult, TokenManager, error_explainer_agent


class TestOutputCleaning:

    def test_clean_fenced_json(self):
        assert clean_ai_output('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_extract_json_with_surrounding_text(self):
        assert extract_json_from_text('Sure! {"explanation": "x"} hope it helps') == {"explanation": "x"}

    def test_extract_json_keeps_json_word_in_content(self):
        parsed = extract_json_from_text('{"explanation": "JSON.parse failed on json input"}')
        assert parsed["explanation"] == "JSON.parse failed on json input"

    def test_extract_json_rejects_garbage(self):
        with pytest.raises(ValueError):
            extract_json_from_text("I could not analyse that")

    def test_extract_json_rejects_non_object(self):
        with pytest.raises(ValueError):
            extract_json_from_text("[1, 2]")


@pytest.mark.asyncio
class TestPromptClients:

    async def test_explain_error(self, fake_agents):
        result = await explain_error("let x;", "javascript", "TypeError: x is undefined")
        assert result.explanation == "The loop reads one element past the end."
        agent_name, prompt = fake_agents.calls[0]
        assert agent_name == "ErrorExplainer"
        assert "```javascript\nlet x;\n```" in prompt
        assert "Error Message: TypeError: x is undefined" in prompt

    async def test_suggest_code_fix(self, fake_agents):
        result = await suggest_code_fix("code", "javascript", "stack")
        assert result.suggested_fix == "for (let i = 0; i < arr.length; i++)"
        assert result.explanation == "Stop before arr.length."
        assert result.model_dump(by_alias=True)["suggestedFix"] == result.suggested_fix

    async def test_generate_code(self, fake_agents):
        result = await generate_code_from_description("print the answer", "javascript")
        assert result.code == "console.log(42);"
        assert "Description: print the answer" in fake_agents.calls[0][1]

    async def test_output_missing_field_fails_validation(self, fake_agents):
        fake_agents.replies["CodeFixSuggester"] = '{"explanation": "no fix given"}'
        with pytest.raises(ValidationError):
            await suggest_code_fix("code", "javascript", "stack")

    async def test_transport_failure_propagates(self, fake_agents):
        fake_agents.replies["ErrorExplainer"] = ConnectionError("network down")
        with pytest.raises(ConnectionError):
            await explain_error("code", "javascript", "err")

    async def test_oversized_input_never_reaches_agent(self, monkeypatch):
        monkeypatch.setattr(functions, "token_manager", TokenManager(max_input_tokens=5))

        def fail_run(*args, **kwargs):
            raise AssertionError("agent should not run")

        monkeypatch.setattr(functions.Runner, "run_streamed", fail_run)
        with pytest.raises(ValueError, match="Input too large"):
            await run_agent_with_token_limit(error_explainer_agent, "word " * 200)


@pytest.mark.asyncio
class TestRunPipeline:

    @pytest.fixture
    def clean_js(self, monkeypatch):
        calls = []

        def fake_run_javascript(code):
            calls.append(code)
            return ExecutionResult(output="hello")

        monkeypatch.setattr(functions, "run_javascript", fake_run_javascript)
        return calls

    @pytest.fixture
    def failing_js(self, monkeypatch):
        monkeypatch.setattr(functions, "run_javascript", lambda code: ExecutionResult(
            output="Error executing JavaScript:\nboom", error_message="boom",
            error_description="Error: boom\n    at <anonymous>", failed=True,
        ))

    async def test_clean_javascript_run(self, fake_agents, clean_js):
        session = EditorSession("javascript")
        notices = await run_code(session)

        assert session.output == "hello"
        assert session.error_explanation == "The loop reads one element past the end."
        assert session.suggested_fix == (
            "for (let i = 0; i < arr.length; i++)\n\nExplanation:\nStop before arr.length."
        )
        assert not session.is_loading
        assert notices == [{
            "title": "AI Analysis Complete",
            "description": "AI analysis results are available in the respective panels.",
            "variant": "default",
        }]
        assert "No runtime errors detected" in fake_agents.calls[0][1]
        assert "ran without errors" in fake_agents.calls[1][1]

    async def test_failed_javascript_run_forwards_error(self, fake_agents, failing_js):
        session = EditorSession("javascript")
        await run_code(session)

        assert "Error Message: boom" in fake_agents.calls[0][1]
        assert "Error Description: Error: boom" in fake_agents.calls[1][1]

    async def test_runner_crash_becomes_exception_output(self, fake_agents, monkeypatch):
        def broken_runner(code):
            raise UnicodeEncodeError("utf-8", code, 0, 1, "surrogates not allowed")

        monkeypatch.setattr(functions, "run_javascript", broken_runner)
        session = EditorSession("javascript")
        session.set_code("console.log('\ud800')")
        notices = await run_code(session)

        assert "EXCEPTION: UnicodeEncodeError" in session.output
        assert [name for name, _ in fake_agents.calls] == ["ErrorExplainer", "CodeFixSuggester"]
        assert notices[-1]["title"] == "AI Analysis Complete"
        assert not session.is_loading

    async def test_agents_called_in_order(self, fake_agents, clean_js):
        await run_code(EditorSession("javascript"))
        assert [name for name, _ in fake_agents.calls] == ["ErrorExplainer", "CodeFixSuggester"]

    async def test_non_javascript_never_runs_locally(self, fake_agents, clean_js):
        session = EditorSession("java")
        await run_code(session)

        assert clean_js == []
        assert "Live execution is only available for JavaScript" in session.output
        assert "Error Message: Simulated java error." in fake_agents.calls[0][1]

    async def test_empty_code_short_circuits(self, fake_agents, clean_js):
        session = EditorSession("javascript")
        session.set_code("   \n")
        notices = await run_code(session)

        assert fake_agents.calls == []
        assert clean_js == []
        assert notices == [{
            "title": "Empty Code",
            "description": "Please enter some code to debug.",
            "variant": "destructive",
        }]
        assert not session.is_loading

    async def test_fix_failure_keeps_explanation(self, fake_agents, clean_js):
        fake_agents.replies["CodeFixSuggester"] = RuntimeError("quota exceeded")
        session = EditorSession("javascript")
        notices = await run_code(session)

        assert session.error_explanation == "The loop reads one element past the end."
        assert session.suggested_fix == "Failed to get suggested fix from AI. quota exceeded"
        assert notices[-1]["title"] == "AI Error"
        assert notices[-1]["variant"] == "destructive"
        assert not session.is_loading

    async def test_explanation_failure_fills_both_panels(self, fake_agents, clean_js):
        fake_agents.replies["ErrorExplainer"] = RuntimeError("offline")
        session = EditorSession("javascript")
        await run_code(session)

        assert session.error_explanation == "Failed to get explanation from AI. offline"
        assert session.suggested_fix == "Failed to get suggested fix from AI. offline"
        assert len(fake_agents.calls) == 1

    async def test_run_clears_previous_results(self, fake_agents, clean_js):
        session = EditorSession("javascript")
        session.output = "old output"
        session.set_code("")
        await run_code(session)
        assert session.output == ""

    async def test_streaming_event_order(self, fake_agents, clean_js):
        session = EditorSession("javascript")
        events = [event["type"] async for event in run_code_streaming(session)]
        assert events == ["output", "explanation", "suggested_fix", "notice"]

    async def test_loading_flag_set_during_run(self, fake_agents, clean_js):
        session = EditorSession("javascript")
        stream = run_code_streaming(session)
        await stream.__anext__()
        assert session.is_loading
        async for _ in stream:
            pass
        assert not session.is_loading
