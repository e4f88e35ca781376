"""Tests for the OpenAI-compatible model wrapper."""

from types import SimpleNamespace

import openai
import pytest

from playwright_mcp_client.config import Settings
from playwright_mcp_client.errors import ModelCallError
from playwright_mcp_client.llm_client import (
    ChatModel,
    conversation_to_openai,
    descriptor_to_openai_tool,
    response_to_blocks,
)
from playwright_mcp_client.mcp_servers import ToolDescriptor
from playwright_mcp_client.messages import (
    Conversation,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)


def _tool_call(id_, name, arguments):
    return SimpleNamespace(
        id=id_,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def _completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.response


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_descriptor_to_openai_tool():
    tool = ToolDescriptor(
        name="browser_navigate",
        description="Open a URL",
        input_schema={"type": "object", "properties": {"url": {"type": "string"}}},
    )

    assert descriptor_to_openai_tool(tool) == {
        "type": "function",
        "function": {
            "name": "browser_navigate",
            "description": "Open a URL",
            "parameters": {"type": "object", "properties": {"url": {"type": "string"}}},
        },
    }


def test_conversation_to_openai():
    history = (
        Conversation()
        .append(Message.user_text("open example.com"))
        .append(
            Message(
                role="assistant",
                content=(
                    TextBlock("Opening"),
                    ToolUseBlock(id="c1", name="browser_navigate", input={"url": "https://example.com"}),
                    ToolUseBlock(id="c2", name="screenshot"),
                ),
            )
        )
        .append(
            Message(
                role="user",
                content=(ToolResultBlock("c1", "navigated"), ToolResultBlock("c2", "saved")),
            )
        )
    )

    messages = conversation_to_openai(history, system_prompt="be brief")

    assert messages == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "open example.com"},
        {
            "role": "assistant",
            "content": "Opening",
            "tool_calls": [
                {
                    "id": "c1",
                    "type": "function",
                    "function": {
                        "name": "browser_navigate",
                        "arguments": '{"url":"https://example.com"}',
                    },
                },
                {
                    "id": "c2",
                    "type": "function",
                    "function": {"name": "screenshot", "arguments": "{}"},
                },
            ],
        },
        {"role": "tool", "tool_call_id": "c1", "content": "navigated"},
        {"role": "tool", "tool_call_id": "c2", "content": "saved"},
    ]


def test_assistant_without_text_has_null_content():
    history = Conversation().append(
        Message(role="assistant", content=(ToolUseBlock(id="c1", name="screenshot"),))
    )

    (message,) = conversation_to_openai(history)

    assert message["content"] is None


def test_response_to_blocks_keeps_tool_call_order():
    msg = SimpleNamespace(
        content="Let me look",
        tool_calls=[
            _tool_call("a", "browser_navigate", '{"url": "https://a.test"}'),
            _tool_call("b", "browser_snapshot", None),
        ],
    )

    assert response_to_blocks(msg) == [
        TextBlock("Let me look"),
        ToolUseBlock(id="a", name="browser_navigate", input={"url": "https://a.test"}),
        ToolUseBlock(id="b", name="browser_snapshot", input={}),
    ]


def test_malformed_arguments_become_empty():
    msg = SimpleNamespace(content=None, tool_calls=[_tool_call("a", "screenshot", "{oops")])

    assert response_to_blocks(msg) == [ToolUseBlock(id="a", name="screenshot", input={})]


@pytest.mark.asyncio
class TestChatModel:
    async def test_request_shape(self):
        completions = FakeCompletions(_completion(content="4"))
        model = ChatModel(_client(completions), "llama3.1", 1000)
        tools = [ToolDescriptor(name="screenshot")]
        history = Conversation().append(Message.user_text("what is 2+2"))

        blocks = await model.create(history, tools, system_prompt=None)

        assert blocks == [TextBlock("4")]
        assert completions.kwargs["model"] == "llama3.1"
        assert completions.kwargs["max_tokens"] == 1000
        assert completions.kwargs["messages"] == [{"role": "user", "content": "what is 2+2"}]
        assert completions.kwargs["tools"][0]["function"]["name"] == "screenshot"

    async def test_no_tools_omits_tools_argument(self):
        completions = FakeCompletions(_completion(content="hi"))
        model = ChatModel(_client(completions), "llama3.1", 1000)

        await model.create(Conversation().append(Message.user_text("hi")), [])

        assert "tools" not in completions.kwargs

    async def test_api_errors_become_model_call_error(self):
        completions = FakeCompletions(error=openai.OpenAIError("invalid api key"))
        model = ChatModel(_client(completions), "llama3.1", 1000)

        with pytest.raises(ModelCallError, match="invalid api key"):
            await model.create(Conversation().append(Message.user_text("hi")), [])

    async def test_empty_choices(self):
        completions = FakeCompletions(SimpleNamespace(choices=[]))
        model = ChatModel(_client(completions), "llama3.1", 1000)

        with pytest.raises(ModelCallError):
            await model.create(Conversation().append(Message.user_text("hi")), [])


def test_from_settings():
    settings = Settings(api_key="secret", base_url="http://llm.local/v1", model_name="m", max_tokens=42)

    model = ChatModel.from_settings(settings)

    assert model.model_name == "m"
    assert model.max_tokens == 42
    assert str(model.client.base_url).startswith("http://llm.local/v1")
