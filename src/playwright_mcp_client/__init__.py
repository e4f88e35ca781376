"""Command-line chat client bridging an LLM with the Playwright MCP server.

This package provides:

- An OpenAI-compatible LLM client (for example, a local Ollama or vLLM endpoint).
- MCP tool-provider management for the Playwright MCP server.
- A tool-calling loop that lets the model drive the browser for each query.
- A CLI entrypoint for interactive usage.
"""
