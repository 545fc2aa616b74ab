import sys
import json
import logging
import threading
from typing import Any, BinaryIO, Dict, Optional, TextIO

from twenty_mcp.mcp.handlers import ToolDispatcher
from twenty_mcp.mcp.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    SERVER_NAME,
    negotiate_protocol_version,
)
from twenty_mcp.version import __version__

logger = logging.getLogger("Twenty.mcp.server")


def _skip_headers(stream: BinaryIO) -> bool:
    """Consume header lines up to the blank separator; False at end of input."""
    while True:
        line = stream.readline()
        if not line:
            return False
        if not line.strip():
            return True


def read_frame(stream: BinaryIO) -> Optional[bytes]:
    """
    Raw bytes of the next message. Accepts Content-Length framed bodies and
    bare JSON lines; None at end of input or on a truncated body.
    """
    while True:
        line = stream.readline()
        if not line:
            return None
        if not line.strip():
            continue
        if not line.lower().startswith(b"content-length:"):
            return line

        length = line.split(b":", 1)[1].strip()
        if not length.isdigit() or int(length) == 0:
            logger.warning("Ignoring frame with bad Content-Length %r", length)
            if not _skip_headers(stream):
                return None
            continue
        if not _skip_headers(stream):
            return None
        body = stream.read(int(length))
        if len(body) != int(length):
            return None
        return body


class McpServer:
    """
    Handles JSON-RPC communication over stdio. Messages are processed one at
    a time in arrival order.
    """
    def __init__(
        self,
        dispatcher: ToolDispatcher,
        input_stream: Optional[BinaryIO] = None,
        output_stream: Optional[TextIO] = None,
    ):
        self.dispatcher = dispatcher
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.transport_closed = threading.Event()
        self.write_lock = threading.Lock()
        self.session: Dict[str, Any] = {"negotiated": False, "initialized": False}

    def _output(self) -> TextIO:
        return self.output_stream or sys.stdout

    def stop(self) -> None:
        self.transport_closed.set()

    def send_rpc(self, message: Dict[str, Any]) -> None:
        """Write one newline-delimited JSON-RPC message; a closed pipe ends the transport."""
        if self.transport_closed.is_set():
            return
        line = json.dumps(message) + "\n"
        with self.write_lock:
            if self.transport_closed.is_set():
                return
            try:
                out = self._output()
                out.write(line)
                out.flush()
            except OSError as exc:
                self.transport_closed.set()
                logger.warning("stdout closed, dropping reply id=%s: %s", message.get("id"), exc)

    def send_error(self, msg_id: Any, code: int, message: str) -> None:
        self.send_rpc({"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}})

    def send_result(self, msg_id: Any, result: Dict[str, Any]) -> None:
        self.send_rpc({"jsonrpc": "2.0", "id": msg_id, "result": result})

    def read_message(self, stream: BinaryIO) -> Optional[Dict[str, Any]]:
        """
        Next JSON-RPC object from the stream, or None at end of input.
        Frames that are not JSON objects are dropped.
        """
        while True:
            frame = read_frame(stream)
            if frame is None:
                return None
            try:
                msg = json.loads(frame.decode("utf-8"))
            except ValueError:
                logger.warning("Dropping malformed frame (%d bytes)", len(frame))
                continue
            if isinstance(msg, dict):
                return msg
            logger.debug("Dropping non-object frame of type %s", type(msg).__name__)

    def serve_forever(self) -> None:
        stream = self.input_stream or sys.stdin.buffer
        logger.info("Twenty MCP server listening on stdio")
        while not self.transport_closed.is_set():
            msg = self.read_message(stream)
            if msg is None:
                break
            self.dispatch(msg)
        logger.info("Twenty MCP server stopped")

    def dispatch(self, msg: Dict[str, Any]) -> None:
        try:
            self._dispatch(msg)
        except Exception:
            logger.exception("Unexpected error during RPC dispatch")
            msg_id = msg.get("id")
            if msg_id is not None and not self.transport_closed.is_set():
                self.send_error(msg_id, INTERNAL_ERROR, "Internal error during request dispatch.")

    def _dispatch(self, msg: Dict[str, Any]) -> None:
        method = msg.get("method")
        msg_id = msg.get("id")
        params = msg.get("params")
        if params is None:
            params = {}

        if not isinstance(method, str):
            if msg_id is not None:
                self.send_error(msg_id, INVALID_REQUEST, "Invalid request: missing method")
            return

        # Notifications carry no id and never get a reply.
        if msg_id is None:
            if method == "notifications/initialized":
                self.session["initialized"] = True
            else:
                logger.debug("Ignoring notification %s", method)
            return

        if not isinstance(params, dict):
            self.send_error(msg_id, INVALID_PARAMS, "Invalid params: params must be an object")
            return

        if method == "initialize":
            self.handle_initialize(msg_id, params)
        elif method == "ping":
            self.send_result(msg_id, {})
        elif method == "tools/list":
            self.dispatcher.watcher.refresh_if_changed()
            self.send_result(msg_id, {"tools": self.dispatcher.list_tools()})
        elif method == "tools/call":
            self.handle_call_tool(msg_id, params)
        else:
            self.send_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def handle_initialize(self, msg_id: Any, params: Dict[str, Any]) -> None:
        requested_version = params.get("protocolVersion")
        negotiated_version = negotiate_protocol_version(requested_version)
        if not negotiated_version:
            self.send_error(msg_id, INVALID_PARAMS, f"Unsupported protocol version {requested_version}")
            return

        self.session["negotiated"] = True
        self.session["protocol_version"] = negotiated_version
        self.session["client_info"] = params.get("clientInfo", {})

        registry = self.dispatcher.registry
        self.send_result(msg_id, {
            "protocolVersion": negotiated_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "instructions": (
                f"Twenty CRM tools for {len(registry)} objects "
                f"(schema source: {registry.source})."
            ),
        })

    def handle_call_tool(self, msg_id: Any, params: Dict[str, Any]) -> None:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            self.send_error(msg_id, INVALID_PARAMS, "Invalid params: tools/call requires non-empty string name")
            return

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            self.send_error(msg_id, INVALID_PARAMS, "Invalid params: arguments must be an object")
            return

        self.dispatcher.watcher.refresh_if_changed()
        self.send_result(msg_id, self.dispatcher.call(name, arguments))
