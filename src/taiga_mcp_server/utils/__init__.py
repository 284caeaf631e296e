"""Taiga MCP Server Utilities

This package contains utility modules for the Taiga MCP server.
"""

__all__ = [
    "attachments",
    "errors",
    "pagination",
    "rate_limit",
    "validation",
    "versioning",
]
