"""
Twenty CRM MCP: schema-driven tool server for the Twenty REST API
"""

from twenty_mcp.sdk import (
    HttpError,
    ResolutionError,
    TwentyClient,
    TwentyConnectionError,
    TwentyError,
)
from twenty_mcp.version import __version__

__all__ = [
    "__version__",
    "TwentyClient",
    "TwentyError",
    "TwentyConnectionError",
    "HttpError",
    "ResolutionError",
]
