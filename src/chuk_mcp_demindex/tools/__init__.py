"""MCP tool modules for chuk-mcp-demindex."""
