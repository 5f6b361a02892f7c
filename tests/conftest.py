"""
Shared fixtures for the AetherDebug test suite.

The API key must be present before the package is imported: the agent
client is built at import time and the app refuses to start without it.
"""

import os
import shutil

os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest

from Aether_Debug import functions, session_store


NODE_AVAILABLE = shutil.which(os.getenv("NODE_BINARY", "node")) is not None

requires_node = pytest.mark.skipif(not NODE_AVAILABLE, reason="node is not installed")


class FakeAgentRunner:
    """Stands in for run_agent_with_token_limit, answering per agent name."""

    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    async def __call__(self, agent, input_data):
        self.calls.append((agent.name, input_data))
        reply = self.replies[agent.name]
        if isinstance(reply, Exception):
            raise reply

        class Result:
            final_output = reply

        return Result()


@pytest.fixture
def fake_agents(monkeypatch):
    """Install a FakeAgentRunner with well-formed replies for every agent."""
    runner = FakeAgentRunner({
        "ErrorExplainer": '{"explanation": "The loop reads one element past the end."}',
        "CodeFixSuggester": '```json\n{"suggestedFix": "for (let i = 0; i < arr.length; i++)", '
                            '"explanation": "Stop before arr.length."}\n```',
        "CodeGenerator": '{"code": "console.log(42);"}',
    })
    monkeypatch.setattr(functions, "run_agent_with_token_limit", runner)
    return runner


@pytest.fixture(autouse=True)
def clean_sessions():
    session_store.clear_sessions()
    yield
    session_store.clear_sessions()
