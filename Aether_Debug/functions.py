"""
Functions module for AetherDebug
Contains the prompt clients and the run pipeline behind the editor page
"""

import json
import asyncio
import traceback
from agents import Runner
from .models import (
    TokenManager, EditorSession, ExecutionResult,
    ExplainErrorInput, ExplainErrorOutput,
    SuggestCodeFixInput, SuggestCodeFixOutput,
    GenerateCodeInput, GenerateCodeOutput,
    error_explainer_agent, code_fix_agent, code_generator_agent,
    make_notice,
)
from .prompts import explain_error_template, suggest_code_fix_template, generate_code_template
from .code_runner import run_javascript, simulate_execution, format_exception_output

# Global instances
token_manager = TokenManager()

JS_CLEAN_RUN_MESSAGE = "JavaScript code executed successfully. No runtime errors detected."
JS_CLEAN_RUN_DESCRIPTION = (
    "The JavaScript code ran without errors. Please review it for best practices, "
    "potential logic flaws, or areas for improvement."
)
NO_ERROR_MESSAGE = "No specific error message captured."
NO_ERROR_DESCRIPTION = "No specific error description available. Analyze for general issues."

# -------------------
# Utility Functions
# -------------------

def extract_text_from_event(event):
    """Extract clean text content from streaming events"""
    try:
        if hasattr(event, "data") and hasattr(event.data, "delta"):
            return event.data.delta
    except Exception:
        pass

    if isinstance(event, dict):
        if "delta" in event and isinstance(event["delta"], str):
            return event["delta"]
        if "text" in event and isinstance(event["text"], str):
            return event["text"]

    if isinstance(event, str):
        return event

    return ""


def clean_ai_output(output):
    """Clean AI output by removing markdown formatting"""
    cleaned = output.strip()
    if cleaned.startswith("json\n"):
        cleaned = cleaned.replace("json\n", "", 1).strip()
    elif cleaned.startswith("```json"):
        cleaned = cleaned.replace("```json", "", 1)
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
        cleaned = cleaned.strip()
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
        cleaned = cleaned.strip()
    return cleaned


def extract_json_from_text(text: str):
    """Best-effort extraction of a JSON object from noisy LLM output.
    Returns: Parsed JSON dict
    Raises: ValueError if JSON cannot be parsed
    """
    if not isinstance(text, str):
        text = str(text) if text is not None else ""

    stripped = clean_ai_output(text)

    # Try to find a JSON object span
    start = stripped.find('{')
    end = stripped.rfind('}')

    if start != -1 and end != -1 and end > start:
        candidate = stripped[start:end+1]
    else:
        candidate = stripped

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        error_msg = f"Failed to parse JSON from AI output: {e}. Original text preview: {text[:200]}..."
        print(f"❌ {error_msg}")
        raise ValueError(error_msg)

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object from AI output, got {type(parsed).__name__}")
    return parsed


async def run_agent_with_token_limit(agent, input_data):
    """Run an agent to completion and return its collected text"""
    tokens = token_manager.ensure_within_limit(input_data)
    print(f"🚀 Running {agent.name} agent...")
    print("-" * 60)
    try:
        stream_result = Runner.run_streamed(agent, input=input_data)
        full_output = ""
        if hasattr(stream_result, "stream_events"):
            async for event in stream_result.stream_events():
                text_piece = extract_text_from_event(event)
                if text_piece:
                    full_output += text_piece

        print(full_output)
        print("-" * 60)
        token_manager.add_tokens(tokens + token_manager.count_tokens(full_output))

        class ResultWrapper:
            def __init__(self, text):
                self.final_output = text

        return ResultWrapper(full_output)
    except Exception as e:
        print(f"\n❌ Streaming error: {type(e).__name__}: {str(e)}")
        raise e


# -------------------
# Prompt Clients
# -------------------

async def explain_error(code: str, language: str, error_message: str) -> ExplainErrorOutput:
    """Ask the explainer agent what an error means"""
    request = ExplainErrorInput(code=code, language=language, error_message=error_message)
    prompt = explain_error_template.format(
        language=request.language, code=request.code, error_message=request.error_message
    )
    result = await run_agent_with_token_limit(error_explainer_agent, prompt)
    return ExplainErrorOutput.model_validate(extract_json_from_text(result.final_output))


async def suggest_code_fix(code: str, language: str, error_description: str) -> SuggestCodeFixOutput:
    """Ask the fix agent for a corrected version of the code"""
    request = SuggestCodeFixInput(code=code, language=language, error_description=error_description)
    prompt = suggest_code_fix_template.format(
        language=request.language, code=request.code, error_description=request.error_description
    )
    result = await run_agent_with_token_limit(code_fix_agent, prompt)
    return SuggestCodeFixOutput.model_validate(extract_json_from_text(result.final_output))


async def generate_code_from_description(description: str, language: str) -> GenerateCodeOutput:
    request = GenerateCodeInput(description=description, language=language)
    prompt = generate_code_template.format(language=request.language, description=request.description)
    result = await run_agent_with_token_limit(code_generator_agent, prompt)
    return GenerateCodeOutput.model_validate(extract_json_from_text(result.final_output))


# -------------------
# Run Pipeline
# -------------------

async def execute_code(code: str, language: str) -> ExecutionResult:
    if language == "javascript":
        try:
            return await asyncio.to_thread(run_javascript, code)
        except Exception as e:
            print(f"❌ JavaScript runner failed: {type(e).__name__}: {e}")
            return format_exception_output(f"{type(e).__name__}: {e}", None, [])
    return simulate_execution(code, language)


async def run_code_streaming(session: EditorSession):
    """Run the session's code and both AI prompts, yielding events as state changes"""
    session.is_loading = True
    session.clear_results()

    try:
        code = session.code
        language = session.language

        if code.strip() == "":
            yield {"type": "notice", "notice": make_notice(
                "Empty Code", "Please enter some code to debug.", "destructive"
            )}
            return

        print(f"\n🐛 STARTING RUN ({language})")
        print("=" * 50)

        execution = await execute_code(code, language)
        session.output = execution.output
        yield {"type": "output", "chunk": session.output}

        clean_js_run = language == "javascript" and not execution.failed
        try:
            error_message = JS_CLEAN_RUN_MESSAGE if clean_js_run else (execution.error_message or NO_ERROR_MESSAGE)
            explanation_result = await explain_error(code, language, error_message)
            session.error_explanation = explanation_result.explanation
            yield {"type": "explanation", "chunk": session.error_explanation}

            error_description = (
                JS_CLEAN_RUN_DESCRIPTION if clean_js_run
                else (execution.error_description or NO_ERROR_DESCRIPTION)
            )
            fix_result = await suggest_code_fix(code, language, error_description)
            session.suggested_fix = fix_result.suggested_fix + "\n\nExplanation:\n" + fix_result.explanation
            yield {"type": "suggested_fix", "chunk": session.suggested_fix}

            yield {"type": "notice", "notice": make_notice(
                "AI Analysis Complete", "AI analysis results are available in the respective panels."
            )}
        except Exception as ai_error:
            print(f"❌ AI Processing Error: {type(ai_error).__name__}: {ai_error}")
            traceback.print_exc()
            if not session.error_explanation:
                session.error_explanation = "Failed to get explanation from AI. " + str(ai_error)
                yield {"type": "explanation", "chunk": session.error_explanation}
            if not session.suggested_fix:
                session.suggested_fix = "Failed to get suggested fix from AI. " + str(ai_error)
                yield {"type": "suggested_fix", "chunk": session.suggested_fix}
            yield {"type": "notice", "notice": make_notice(
                "AI Error", "Could not connect to AI services or AI processing failed.", "destructive"
            )}
    finally:
        session.is_loading = False


async def run_code(session: EditorSession):
    """Drive the run pipeline to completion; returns the notices it raised"""
    notices = []
    async for event in run_code_streaming(session):
        if event["type"] == "notice":
            notices.append(event["notice"])
    return notices
