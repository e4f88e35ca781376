"""MCP tool-provider management for the Playwright MCP server.

This module defines:

- :class:`MCPServer` dataclass describing how to launch the provider.
- :class:`ToolDescriptor`, the provider-neutral description of one tool.
- :class:`MCPToolProvider`, a thin wrapper over :class:`mcp.ClientSession`.
- :func:`connect_provider` to spawn the server and run the MCP handshake.
- :func:`fetch_catalog` to list the provider's tools once per session.
- :func:`call_result_to_text` to flatten a tool result for the model.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.stdio import stdio_client

from .config import Settings
from .errors import ProviderConnectionError

logger = logging.getLogger(__name__)

EMPTY_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {},
    "required": [],
}


@dataclass
class MCPServer:
    """Launch parameters for the MCP server process.

    Attributes:
        name: Logical server name used in log messages.
        command: Executable used to start the MCP server (for example,
            ``"npx"``).
        args: List of command-line arguments passed to :attr:`command`.
    """

    name: str
    command: str
    args: List[str]


def build_server(settings: Settings, name: str = "playwright") -> MCPServer:
    """Build the :class:`MCPServer` described by ``settings``."""
    return MCPServer(
        name=name,
        command=settings.mcp_command,
        args=list(settings.mcp_args),
    )


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool exposed by the provider, in the shape the model consumes.

    Attributes:
        name: Tool name, unique within a catalog.
        description: Human-readable description shown to the model.
        input_schema: JSON schema of the tool arguments.
    """

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = field(default_factory=dict)


def mcp_tool_to_descriptor(tool: types.Tool) -> ToolDescriptor:
    """Convert an MCP :class:`Tool` into a :class:`ToolDescriptor`."""
    return ToolDescriptor(
        name=tool.name,
        description=tool.description or "",
        input_schema=tool.inputSchema or dict(EMPTY_INPUT_SCHEMA),
    )


def call_result_to_text(result: types.CallToolResult, limit: Optional[int] = None) -> str:
    """Convert a :class:`CallToolResult` into a plain text string.

    Text content is concatenated in order. Non-text content is stringified
    using :func:`str`. Results flagged with ``isError`` are prefixed so the
    model can tell a failed action from normal output.

    Args:
        result: The MCP tool call result.
        limit: Maximum number of characters to keep, or ``None``.

    Returns:
        str: A human-readable text representation of the result.
    """
    if not result.content:
        text = "Tool returned no content."
    else:
        parts: List[str] = []
        for c in result.content:
            if isinstance(c, types.TextContent):
                parts.append(c.text)
            else:
                parts.append(str(c))
        text = "\n".join(parts)

    if result.isError:
        text = f"Error: {text}"
    if limit is not None and len(text) > limit:
        text = text[:limit] + "\n...(output truncated)..."
    return text


class MCPToolProvider:
    """Tool provider backed by a live MCP client session."""

    def __init__(self, name: str, session: ClientSession, output_limit: Optional[int] = None):
        self.name = name
        self.session = session
        self.output_limit = output_limit

    async def list_tools(self) -> List[types.Tool]:
        result = await self.session.list_tools()
        return list(result.tools)

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        """Run one tool and return its output as text.

        Exceptions from the session propagate unchanged; the caller decides
        how to report them.
        """
        result = await self.session.call_tool(name=name, arguments=arguments)
        if result.isError:
            logger.warning("Tool %s on %s reported an error", name, self.name)
        return call_result_to_text(result, self.output_limit)


async def connect_provider(
    stack: AsyncExitStack,
    server: MCPServer,
    output_limit: Optional[int] = None,
) -> MCPToolProvider:
    """Start the MCP server and return a connected provider.

    This function performs the following steps:

    1. Start the MCP server process using :mod:`mcp.client.stdio`.
    2. Create a :class:`ClientSession` on the process streams.
    3. Run the MCP initialization handshake.

    The process and the session are registered on ``stack``, so closing the
    stack terminates the provider on every exit path.

    Args:
        stack: An :class:`AsyncExitStack` that owns the provider lifetime.
        server: Launch parameters for the server.
        output_limit: Characters of tool output to keep per call.

    Raises:
        ProviderConnectionError: If the server cannot be started or the
            handshake fails.
    """
    try:
        read_stream, write_stream = await stack.enter_async_context(
            stdio_client(
                StdioServerParameters(
                    command=server.command,
                    args=server.args,
                )
            )
        )
        session = await stack.enter_async_context(
            ClientSession(read_stream, write_stream)
        )
        await session.initialize()
    except Exception as exc:
        raise ProviderConnectionError(
            f"Failed to connect to MCP server '{server.name}': {exc}"
        ) from exc

    logger.info("Connected to MCP server %s (%s)", server.name, server.command)
    return MCPToolProvider(server.name, session, output_limit)


async def fetch_catalog(provider: Any) -> List[ToolDescriptor]:
    """Query the provider for its tools and map them to descriptors.

    Every tool is exposed; nothing is filtered. The listing is requested
    exactly once.

    Args:
        provider: Object with an async ``list_tools()`` returning MCP tools.

    Returns:
        List[ToolDescriptor]: Tools in the order the provider listed them.

    Raises:
        ProviderConnectionError: If the listing fails or is malformed.
    """
    try:
        tools = await provider.list_tools()
    except Exception as exc:
        raise ProviderConnectionError(f"Failed to list tools: {exc}") from exc

    catalog: List[ToolDescriptor] = []
    seen = set()
    for tool in tools:
        if not isinstance(tool, types.Tool):
            raise ProviderConnectionError(
                f"Malformed tool listing entry: {tool!r}"
            )
        if tool.name in seen:
            raise ProviderConnectionError(
                f"Duplicate tool name in listing: {tool.name}"
            )
        seen.add(tool.name)
        catalog.append(mcp_tool_to_descriptor(tool))
    return catalog
