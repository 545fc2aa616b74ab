"""
Twenty REST transport.
"""

from twenty_mcp.sdk.client import TwentyClient
from twenty_mcp.sdk.errors import HttpError, ResolutionError, TwentyConnectionError, TwentyError

__all__ = [
    "TwentyClient",
    "TwentyError",
    "TwentyConnectionError",
    "HttpError",
    "ResolutionError",
]
