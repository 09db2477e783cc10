"""MCP playtest server for idlecore content."""
