"""Runtime configuration for the Playwright MCP chat client.

Values are read from the process environment after loading a local ``.env``
file with :func:`dotenv.load_dotenv`. Only ``API_KEY`` is mandatory; every
other setting falls back to a default that targets a local Ollama instance
and the latest Playwright MCP server.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:11434/v1"
DEFAULT_MODEL_NAME = "llama3.1"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_MAX_TURNS = 20
DEFAULT_TOOL_OUTPUT_LIMIT = 8000
DEFAULT_MCP_COMMAND = "npx"
DEFAULT_MCP_ARGS = "@playwright/mcp@latest"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Resolved client settings.

    Attributes:
        api_key: Credential for the LLM API.
        base_url: OpenAI-compatible endpoint.
        model_name: Model identifier sent with every request.
        max_tokens: Output token budget for each model call.
        max_turns: Upper bound on model calls per query. ``0`` disables it.
        keep_history: Carry the conversation over from one query to the next.
        tool_timeout: Seconds to wait for a single tool call, or ``None``.
        tool_output_limit: Characters of tool output passed back to the model.
        mcp_command: Executable that starts the MCP server.
        mcp_args: Arguments passed to :attr:`mcp_command`.
        log_level: Name of the root logging level.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL_NAME
    max_tokens: int = DEFAULT_MAX_TOKENS
    max_turns: int = DEFAULT_MAX_TURNS
    keep_history: bool = False
    tool_timeout: Optional[float] = None
    tool_output_limit: int = DEFAULT_TOOL_OUTPUT_LIMIT
    mcp_command: str = DEFAULT_MCP_COMMAND
    mcp_args: Tuple[str, ...] = tuple(shlex.split(DEFAULT_MCP_ARGS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to :data:`os.environ`.

        Raises:
            ConfigError: If ``API_KEY`` is missing or a value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        api_key = env.get("API_KEY", "").strip()
        if not api_key:
            raise ConfigError("API_KEY is not set")

        timeout = _get_float(env, "TOOL_TIMEOUT")
        if timeout is not None and timeout <= 0:
            raise ConfigError("TOOL_TIMEOUT must be positive")

        return cls(
            api_key=api_key,
            base_url=env.get("BASE_URL", DEFAULT_BASE_URL),
            model_name=env.get("MODEL_NAME", DEFAULT_MODEL_NAME),
            max_tokens=_get_int(env, "MAX_TOKENS", DEFAULT_MAX_TOKENS, minimum=1),
            max_turns=_get_int(env, "MAX_TURNS", DEFAULT_MAX_TURNS, minimum=0),
            keep_history=_get_bool(env, "KEEP_HISTORY", False),
            tool_timeout=timeout,
            tool_output_limit=_get_int(
                env, "TOOL_OUTPUT_LIMIT", DEFAULT_TOOL_OUTPUT_LIMIT, minimum=1
            ),
            mcp_command=env.get("MCP_COMMAND", DEFAULT_MCP_COMMAND),
            mcp_args=tuple(_split_args(env.get("MCP_ARGS", DEFAULT_MCP_ARGS))),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def _split_args(raw: str) -> List[str]:
    try:
        return shlex.split(raw)
    except ValueError as exc:
        raise ConfigError(f"MCP_ARGS cannot be parsed: {exc}") from exc


def _get_int(env: Mapping[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _get_float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")
