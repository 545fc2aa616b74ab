from twenty_mcp.mcp.definitions import ToolSynthesizer
from twenty_mcp.mcp.handlers import ToolDispatcher
from twenty_mcp.mcp.results import normalize_list_response
from twenty_mcp.mcp.sanitize import PayloadSanitizer, sanitize_payload
from twenty_mcp.mcp.server import McpServer

__all__ = [
    "McpServer",
    "PayloadSanitizer",
    "ToolDispatcher",
    "ToolSynthesizer",
    "normalize_list_response",
    "sanitize_payload",
]
