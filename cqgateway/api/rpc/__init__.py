"""JSON-RPC (MCP) dispatcher."""
