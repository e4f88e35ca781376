"""Conversation data types.

This module defines:

- The content block variants :class:`TextBlock`, :class:`ToolUseBlock`
  and :class:`ToolResultBlock`.
- :class:`Message`, one user or assistant turn.
- :class:`Conversation`, the append-only history sent to the model on
  every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Literal, Tuple, Union


@dataclass(frozen=True)
class TextBlock:
    """Free-form text produced by the model or typed by the user."""

    text: str


@dataclass(frozen=True)
class ToolUseBlock:
    """A request from the model to invoke a tool.

    Attributes:
        id: Identifier unique within one model response.
        name: Name of the tool in the catalog.
        input: Parsed tool arguments.
    """

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultBlock:
    """Output of a tool call, sent back to the model in a user message."""

    tool_use_id: str
    content: str


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]
Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Message:
    """A single conversation turn."""

    role: Role
    content: Tuple[ContentBlock, ...]

    @classmethod
    def user_text(cls, text: str) -> "Message":
        return cls(role="user", content=(TextBlock(text),))

    def tool_uses(self) -> Tuple[ToolUseBlock, ...]:
        return tuple(b for b in self.content if isinstance(b, ToolUseBlock))

    def tool_results(self) -> Tuple[ToolResultBlock, ...]:
        return tuple(b for b in self.content if isinstance(b, ToolResultBlock))


@dataclass(frozen=True)
class Conversation:
    """Append-only message history.

    :meth:`append` never mutates the instance it is called on; it returns a
    new :class:`Conversation`. A turn that fails part-way can therefore be
    abandoned simply by keeping the older object.
    """

    messages: Tuple[Message, ...] = ()

    def append(self, message: Message) -> "Conversation":
        """Return a new conversation with ``message`` appended.

        Raises:
            ValueError: If ``message`` carries tool results that do not answer,
                one for one and in order, the tool calls of the preceding
                assistant message.
        """
        results = message.tool_results()
        if results:
            self._check_results(message, results)
        return Conversation(self.messages + (message,))

    def _check_results(
        self, message: Message, results: Tuple[ToolResultBlock, ...]
    ) -> None:
        if message.role != "user":
            raise ValueError("Tool results must be sent in a user message")
        if not self.messages or self.messages[-1].role != "assistant":
            raise ValueError("Tool results must follow an assistant message")
        expected = [b.id for b in self.messages[-1].tool_uses()]
        actual = [b.tool_use_id for b in results]
        if actual != expected:
            raise ValueError(
                f"Tool results {actual} do not match tool calls {expected}"
            )

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)
