"""Taiga MCP Server Tools

This package contains all MCP tool implementations for Taiga integration.
"""

__all__ = [
    "read_tools",
    "write_tools",
    "comment_tools",
    "attachment_tools",
]
