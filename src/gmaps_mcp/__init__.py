"""MCP server exposing Google Maps geocoding, places and directions over Streamable HTTP."""

__version__ = "0.1.0"
