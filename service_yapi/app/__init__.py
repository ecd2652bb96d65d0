"""
YApi MCP service package.

The service exposes YApi project, category and interface management to
tool-calling agents over the Model Context Protocol (stdio transport):
- Authentication: project token, or username/password session with a
  single re-login when the session expires
- Caching: in-process TTL cache for reads, invalidated by writes

Structure:
- app.main: MCP server wiring and command-line entry point.
- app.adapters: HTTP client for the YApi platform.
- app.auth: Authentication strategies.
- app.caching: Expiring key-value cache.
- app.domain: Argument and envelope models.
- app.tools: Tool declarations and dispatcher.
"""
