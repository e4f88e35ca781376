"""LLM client for the MCP chat client.

This module wraps an OpenAI-compatible chat-completions endpoint. By default
it targets a Llama 3.1 instance exposed via Ollama, but the environment
variables read by :mod:`playwright_mcp_client.config` let you point to any
model.

The rest of the package only sees :class:`~.messages.Conversation` and
content blocks; translation to and from the OpenAI wire format happens here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from .config import Settings
from .errors import ModelCallError
from .mcp_servers import ToolDescriptor
from .messages import (
    ContentBlock,
    Conversation,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)


def create_llm_client(settings: Settings) -> AsyncOpenAI:
    """Create an OpenAI-compatible client configured from ``settings``."""
    return AsyncOpenAI(
        base_url=settings.base_url,
        api_key=settings.api_key,
    )


def descriptor_to_openai_tool(tool: ToolDescriptor) -> dict:
    """Convert a :class:`ToolDescriptor` to an OpenAI tools entry.

    The returned dictionary can be passed to the OpenAI
    ``chat.completions.create(..., tools=[...])`` call.
    """
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.input_schema,
        },
    }


def dump_arguments(arguments: Dict[str, Any]) -> str:
    """Serialize tool arguments as compact JSON."""
    return json.dumps(arguments, separators=(",", ":"), ensure_ascii=False)


def message_to_openai(message: Message) -> List[Dict[str, Any]]:
    """Convert one :class:`Message` into OpenAI chat messages.

    A user message holding tool results expands into one ``role="tool"``
    message per result, in order.
    """
    texts: List[str] = []
    tool_calls: List[Dict[str, Any]] = []
    tool_messages: List[Dict[str, Any]] = []

    for block in message.content:
        if isinstance(block, TextBlock):
            texts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            tool_calls.append(
                {
                    "id": block.id,
                    "type": "function",
                    "function": {
                        "name": block.name,
                        "arguments": dump_arguments(block.input),
                    },
                }
            )
        elif isinstance(block, ToolResultBlock):
            tool_messages.append(
                {
                    "role": "tool",
                    "tool_call_id": block.tool_use_id,
                    "content": block.content,
                }
            )
        else:
            raise TypeError(f"Unsupported content block: {block!r}")

    if message.role == "assistant":
        out: Dict[str, Any] = {
            "role": "assistant",
            "content": "\n".join(texts) if texts else None,
        }
        if tool_calls:
            out["tool_calls"] = tool_calls
        return [out]

    result: List[Dict[str, Any]] = []
    if texts:
        result.append({"role": "user", "content": "\n".join(texts)})
    result.extend(tool_messages)
    return result


def conversation_to_openai(
    history: Conversation, system_prompt: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Convert a whole conversation, optionally led by a system message."""
    messages: List[Dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for message in history:
        messages.extend(message_to_openai(message))
    return messages


def _parse_arguments(raw: Optional[str], tool_name: str) -> Dict[str, Any]:
    try:
        args = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning("Malformed arguments for tool %s: %r", tool_name, raw)
        return {}
    if not isinstance(args, dict):
        logger.warning("Non-object arguments for tool %s: %r", tool_name, raw)
        return {}
    return args


def response_to_blocks(msg: Any) -> List[ContentBlock]:
    """Convert an OpenAI assistant message into content blocks.

    Text comes first, followed by the tool calls in the order the model
    emitted them.
    """
    blocks: List[ContentBlock] = []
    if msg.content:
        blocks.append(TextBlock(msg.content))
    for tc in msg.tool_calls or []:
        blocks.append(
            ToolUseBlock(
                id=tc.id,
                name=tc.function.name,
                input=_parse_arguments(tc.function.arguments, tc.function.name),
            )
        )
    return blocks


class ChatModel:
    """The model collaborator used by the turn executor.

    Args:
        client: OpenAI-compatible async client.
        model_name: Name of the model to use (for example, ``"llama3.1"``).
        max_tokens: Output token budget for every call.
    """

    def __init__(self, client: AsyncOpenAI, model_name: str, max_tokens: int):
        self.client = client
        self.model_name = model_name
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatModel":
        return cls(
            create_llm_client(settings),
            settings.model_name,
            settings.max_tokens,
        )

    async def create(
        self,
        history: Conversation,
        tools: Sequence[ToolDescriptor],
        system_prompt: Optional[str] = None,
    ) -> List[ContentBlock]:
        """Ask the model for the next step.

        Raises:
            ModelCallError: On any error reported by the API client. No retry
                is attempted here.
        """
        kwargs: Dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": self.max_tokens,
            "messages": conversation_to_openai(history, system_prompt),
        }
        if tools:
            kwargs["tools"] = [descriptor_to_openai_tool(t) for t in tools]
            kwargs["tool_choice"] = "auto"

        logger.debug("Calling model %s with %d messages", self.model_name, len(history))
        try:
            resp = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise ModelCallError(f"Model call failed: {exc}") from exc

        if not resp.choices:
            raise ModelCallError("Model returned no choices")
        return response_to_blocks(resp.choices[0].message)
