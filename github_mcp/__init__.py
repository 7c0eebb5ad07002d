"""
GitHub MCP server package.

This package exposes MCP tools for one GitHub repository at a time:
- Repository metadata
- Issues and pull requests
- File contents, directory listings and code search
- Creating or updating files

The server core is transport-agnostic:
- Schema registry and argument validation
- Dispatcher with a uniform error channel
- JSON-RPC protocol server over stdio, TCP or HTTP/SSE
"""
