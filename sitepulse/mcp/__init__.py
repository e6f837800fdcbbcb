"""
SitePulse MCP Server Package

MCP server for site operations:
- Traffic analytics reports
- Zone lookup and connection test
- Pages deployment status
"""

from sitepulse.mcp.server import mcp, run_server

__all__ = [
    "mcp",
    "run_server",
]
