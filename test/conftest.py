"""Shared fakes for the model and the MCP tool provider."""

from typing import Any, Dict, List, Optional

import pytest

from playwright_mcp_client.agent_core import Session
from playwright_mcp_client.mcp_servers import ToolDescriptor


class FakeModel:
    """Returns scripted responses and records every history it was sent."""

    def __init__(self, responses: Optional[List[list]] = None):
        self.responses = list(responses or [])
        self.calls: List[Any] = []

    async def create(self, history, tools, system_prompt=None):
        self.calls.append(history)
        if not self.responses:
            raise AssertionError("FakeModel ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeProvider:
    """Records tool calls and returns ``"<name> ok"`` for each."""

    def __init__(self, failures: Optional[Dict[str, Exception]] = None):
        self.failures = failures or {}
        self.calls: List[tuple] = []

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        self.calls.append((name, arguments))
        if name in self.failures:
            raise self.failures[name]
        return f"{name} ok"


CATALOG = [
    ToolDescriptor(name="screenshot", description="Take a screenshot"),
    ToolDescriptor(
        name="browser_navigate",
        description="Open a URL",
        input_schema={"type": "object", "properties": {"url": {"type": "string"}}},
    ),
    ToolDescriptor(name="browser_click", description="Click an element"),
]


@pytest.fixture
def fake_model():
    """Factory for scripted models."""
    return FakeModel


@pytest.fixture
def fake_provider():
    """Factory for recording providers."""
    return FakeProvider


@pytest.fixture
def provider(fake_provider):
    return fake_provider()


@pytest.fixture
def make_session(provider):
    def _make(responses, **kwargs):
        kwargs.setdefault("provider", provider)
        return Session(model=FakeModel(responses), tools=CATALOG, **kwargs)

    return _make
