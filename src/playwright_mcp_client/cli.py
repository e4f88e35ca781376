"""CLI interface for the Playwright MCP chat client.

This module implements a simple interactive loop that:

- Starts the MCP server and fetches its tool catalog.
- Creates the LLM client.
- Reads user queries from standard input.
- Delegates each query to :func:`answer_query`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from typing import Awaitable, Callable

from .agent_core import Session, answer_query
from .config import Settings
from .errors import (
    ConfigError,
    LoopLimitExceeded,
    ModelCallError,
    ProviderConnectionError,
    ToolExecutionError,
)
from .llm_client import ChatModel
from .mcp_servers import build_server, connect_provider, fetch_catalog

logger = logging.getLogger(__name__)

EXIT_COMMAND = "quit"
QUERY_ERRORS = (ModelCallError, ToolExecutionError, LoopLimitExceeded)

LineReader = Callable[[str], Awaitable[str]]


async def read_stdin(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def chat_loop(session: Session, read_line: LineReader = read_stdin) -> None:
    """Run an interactive CLI chat loop.

    Each non-empty line is answered with :func:`answer_query`. The loop ends
    on ``quit`` (any letter case) or end of input. A failed query is
    reported and the loop moves on to the next prompt.

    Args:
        session: Connected chat session.
        read_line: Coroutine returning one line of user input.
    """
    print("\nMCP Client Started!")
    print(f"Type your queries or '{EXIT_COMMAND}' to exit.")

    while True:
        try:
            user_text = await read_line("\nQuery: ")
        except EOFError:
            print("\nExiting.")
            break

        if not user_text.strip():
            continue
        if user_text.strip().lower() == EXIT_COMMAND:
            print("Bye.")
            break

        try:
            answer = await answer_query(session, user_text)
        except QUERY_ERRORS as exc:
            logger.error("Query failed: %s", exc)
            print(f"\nError: {exc}")
            continue

        print("\n" + answer)


async def run(settings: Settings, read_line: LineReader = read_stdin) -> None:
    """Connect to the provider and run the chat loop.

    The provider process and session are owned by an :class:`AsyncExitStack`
    and released however the loop ends.

    Raises:
        ProviderConnectionError: If the provider cannot be started or its tool
            listing cannot be fetched.
    """
    server = build_server(settings)
    async with AsyncExitStack() as stack:
        provider = await connect_provider(
            stack, server, output_limit=settings.tool_output_limit
        )
        tools = await fetch_catalog(provider)
        print("Connected to server with tools:", [t.name for t in tools])

        session = Session(
            model=ChatModel.from_settings(settings),
            provider=provider,
            tools=tools,
            max_turns=settings.max_turns,
            keep_history=settings.keep_history,
            tool_timeout=settings.tool_timeout,
        )
        await chat_loop(session, read_line)


def main() -> None:
    """Entry point for the playwright-mcp-client CLI.

    Missing credentials and provider connection failures are logged and end
    the process with exit status 1. Ctrl-C ends the session normally.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)
    logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))

    failed = False
    try:
        asyncio.run(run(settings))
    except* ProviderConnectionError as group:
        for exc in group.exceptions:
            logger.error("%s", exc)
        failed = True
    except* KeyboardInterrupt:
        print("\nExiting.")
    if failed:
        sys.exit(1)
