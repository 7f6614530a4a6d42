"""Streamable HTTP transport: session registry, request routing and the Starlette adapter."""
