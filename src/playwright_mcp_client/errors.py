"""Exception hierarchy for the Playwright MCP chat client."""


class PlaywrightMCPClientError(Exception):
    """Base class for all client errors."""


class ConfigError(PlaywrightMCPClientError):
    """Required configuration is missing or has an invalid value."""


class ProviderConnectionError(PlaywrightMCPClientError, ConnectionError):
    """The MCP tool provider is unreachable or returned a malformed tool listing."""


class ModelCallError(PlaywrightMCPClientError):
    """The LLM API call failed (transport, authentication, rate limit, bad request)."""


class ToolExecutionError(PlaywrightMCPClientError):
    """A requested tool is unknown or the provider failed while running it."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class LoopLimitExceeded(PlaywrightMCPClientError):
    """The model kept requesting tools past the configured turn limit."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(
            f"Model still requested tools after {max_turns} turns; giving up."
        )
        self.max_turns = max_turns
