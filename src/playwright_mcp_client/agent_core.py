"""Core agent logic for the Playwright MCP chat client.

This module defines the system prompt, the :class:`Session` object that
holds the model, the provider and the tool catalog, and the tool-calling
loop that answers a single user query.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import LoopLimitExceeded, ToolExecutionError
from .llm_client import dump_arguments
from .mcp_servers import ToolDescriptor
from .messages import (
    Conversation,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)
TOOL_LOG_PREVIEW_LIMIT = 200

SYSTEM_PROMPT = """
You are a web research assistant.

- Operate the browser through the Playwright MCP tools to fulfil the user's request.
- Answer clearly and concisely.
- Do not use tools that close the browser or tabs (browser_close and similar) unless the user explicitly asks.
"""


class LoopState(enum.Enum):
    AWAITING_MODEL = "awaiting_model"
    HAVE_TOOL_CALLS = "have_tool_calls"
    DONE = "done"


@dataclass
class Session:
    """Everything one chat session needs to answer queries.

    Attributes:
        model: Object with an async ``create(history, tools, system_prompt)``
            returning content blocks, normally a
            :class:`~.llm_client.ChatModel`.
        provider: Object with an async ``call_tool(name, arguments)``
            returning text, normally a :class:`~.mcp_servers.MCPToolProvider`.
        tools: Tool catalog fetched once at startup.
        system_prompt: Instructions sent ahead of the history, or ``None``.
        max_turns: Maximum model calls per query. ``0`` means unbounded.
        keep_history: Start each query from the previous query's history
            instead of an empty one.
        tool_timeout: Seconds to wait for one tool call, or ``None``.
        history: Base conversation for the next query. Only updated when
            :attr:`keep_history` is set.
    """

    model: Any
    provider: Any
    tools: Sequence[ToolDescriptor]
    system_prompt: Optional[str] = SYSTEM_PROMPT
    max_turns: int = 20
    keep_history: bool = False
    tool_timeout: Optional[float] = None
    history: Conversation = field(default_factory=Conversation)

    def __post_init__(self) -> None:
        self._tools_by_name: Dict[str, ToolDescriptor] = {t.name: t for t in self.tools}

    def get_tool(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools_by_name.get(name)


@dataclass(frozen=True)
class TurnOutcome:
    history: Conversation
    text: str
    had_tool_calls: bool


def _preview_text(text: str, limit: int = TOOL_LOG_PREVIEW_LIMIT) -> str:
    """Create a single-line preview for logging."""
    text = text.replace("\n", " ").strip()
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...(truncated)..."


async def run_tool(session: Session, block: ToolUseBlock) -> ToolResultBlock:
    """Execute one tool request against the provider.

    Raises:
        ToolExecutionError: If the tool is not in the catalog, the provider
            raises, or the call exceeds :attr:`Session.tool_timeout`.
    """
    if session.get_tool(block.name) is None:
        raise ToolExecutionError(block.name, "unknown tool")

    logger.info("Tool selected: %s args=%s", block.name, dump_arguments(block.input))
    try:
        call = session.provider.call_tool(block.name, block.input)
        if session.tool_timeout is not None:
            output = await asyncio.wait_for(call, timeout=session.tool_timeout)
        else:
            output = await call
    except asyncio.TimeoutError as exc:
        raise ToolExecutionError(
            block.name, f"timed out after {session.tool_timeout}s"
        ) from exc
    except Exception as exc:
        raise ToolExecutionError(block.name, f"provider error: {exc!r}") from exc

    logger.info("Tool result: %s -> %s", block.name, _preview_text(output))
    return ToolResultBlock(tool_use_id=block.id, content=output)


async def execute_turn(session: Session, history: Conversation) -> TurnOutcome:
    """Run one model call and any tool calls it requests.

    1. Call the model with ``history`` and the full tool catalog.
    2. Append the response as an assistant message.
    3. Collect text blocks; run each tool request one at a time, in the
       order the model emitted them.
    4. If tools were called, append a user message with all results, in
       the same order.

    ``history`` itself is never modified, so when a tool fails half-way
    nothing from this turn survives.

    Returns:
        TurnOutcome: Updated history, the text emitted this turn joined by
        newlines, and whether any tool calls occurred.

    Raises:
        ModelCallError: If the model call fails.
        ToolExecutionError: If any tool call fails.
    """
    blocks = await session.model.create(history, session.tools, session.system_prompt)
    history = history.append(Message(role="assistant", content=tuple(blocks)))

    texts: List[str] = []
    results: List[ToolResultBlock] = []
    for block in blocks:
        if isinstance(block, TextBlock):
            texts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            texts.append(
                f"[Calling tool {block.name} with args {dump_arguments(block.input)}]"
            )
            results.append(await run_tool(session, block))
        else:
            raise TypeError(f"Unexpected block in model response: {block!r}")

    had_tool_calls = bool(results)
    if had_tool_calls:
        history = history.append(Message(role="user", content=tuple(results)))

    return TurnOutcome(history=history, text="\n".join(texts), had_tool_calls=had_tool_calls)


async def answer_query(session: Session, query: str) -> str:
    """Run the full tool-calling loop for one user query.

    The model is called repeatedly, executing requested tools in between,
    until a response contains no tool calls. The text from every turn is
    returned joined by newlines, oldest first.

    Raises:
        LoopLimitExceeded: If :attr:`Session.max_turns` model calls have been
            made and the model still requests tools.
        ModelCallError: If a model call fails.
        ToolExecutionError: If a tool call fails.
    """
    base = session.history if session.keep_history else Conversation()
    history = base.append(Message.user_text(query))
    texts: List[str] = []
    turns = 0
    state = LoopState.AWAITING_MODEL

    while state is not LoopState.DONE:
        if state is LoopState.HAVE_TOOL_CALLS:
            if session.max_turns and turns >= session.max_turns:
                raise LoopLimitExceeded(session.max_turns)
            state = LoopState.AWAITING_MODEL

        outcome = await execute_turn(session, history)
        turns += 1
        history = outcome.history
        if outcome.text:
            texts.append(outcome.text)
        state = LoopState.HAVE_TOOL_CALLS if outcome.had_tool_calls else LoopState.DONE

    logger.debug("Query answered in %d turn(s)", turns)
    if session.keep_history:
        session.history = history
    return "\n".join(texts)
