"""Wire types: the JSON-RPC envelope and the subset of MCP this server speaks."""
