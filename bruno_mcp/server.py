"""Bruno MCP Server

JSON-RPC 2.0 over stdio: one request per line in, one response per line
out. Requests are handled strictly one at a time.
"""

import json
import logging
import sys
import time
from typing import Any, Dict, Optional, TextIO

from . import __version__
from .errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ToolError,
    make_error_response,
)
from .logger import log_tool_execution
from .performance import PerformanceManager, ToolMetric
from .security import mask_secrets
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "bruno-mcp"


class MCPServer:
    """Dispatches JSON-RPC requests to the registered tools."""

    def __init__(
        self,
        registry: ToolRegistry,
        performance: Optional[PerformanceManager] = None,
        security=None,
    ):
        """Initialize the server.

        Args:
            registry: Tools exposed through ``tools/list`` and ``tools/call``
            performance: Receives one metric per tool call
            security: SecurityConfig used to mask logged parameters
        """
        self.registry = registry
        self.performance = performance or PerformanceManager()
        self.security = security
        self._running = False

    def handle_request(self, request: Any) -> Optional[Dict[str, Any]]:
        """Handle one decoded JSON-RPC message.

        Returns:
            Response envelope, or None for notifications
        """
        if not isinstance(request, dict) or request.get("jsonrpc") != "2.0" or "method" not in request:
            req_id = request.get("id") if isinstance(request, dict) else None
            return make_error_response(req_id, INVALID_REQUEST)

        method = request["method"]
        params = request.get("params") or {}
        is_notification = "id" not in request
        req_id = request.get("id")

        if is_notification:
            logger.debug("Notification received: %s", method)
            return None

        if method == "initialize":
            return self._result(req_id, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })

        if method == "ping":
            return self._result(req_id, {})

        if method == "tools/list":
            return self._result(req_id, {"tools": self.registry.get_tool_schemas()})

        if method == "tools/call":
            if not isinstance(params, dict):
                return make_error_response(req_id, INVALID_REQUEST, "params must be an object")
            try:
                text = self.call_tool(params.get("name", ""), params.get("arguments") or {})
            except ToolError as e:
                return make_error_response(req_id, e.code, e.message)
            return self._result(req_id, {"content": [{"type": "text", "text": text}]})

        return make_error_response(req_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        """Run a tool, recording a metric and a log line.

        Raises:
            ToolError: Unknown tool or the tool failed
        """
        handler = self.registry.get_handler(name)
        if handler is None:
            raise ToolError(METHOD_NOT_FOUND, f"Unknown tool: {name}")

        start = time.monotonic()
        success = False
        try:
            text = handler(arguments)
            success = True
            return text
        except ToolError:
            raise
        except Exception as e:
            logger.exception("Tool %s failed unexpectedly", name)
            raise ToolError(INTERNAL_ERROR, mask_secrets(f"Tool {name} failed: {e}", self.security)) from e
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            self.performance.record_metric(ToolMetric(tool=name, duration_ms=duration_ms, success=success))
            log_tool_execution(name, arguments, duration_ms, success, self.security)

    def _result(self, req_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": req_id, "result": result}

    def run_stdio(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
        """Serve until stdin closes."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        self._running = True
        logger.info("Bruno MCP server starting (stdio mode)")

        for line in stdin:
            if not self._running:
                break
            if not line.strip():
                continue

            try:
                request = json.loads(line)
            except json.JSONDecodeError as e:
                logger.error("Invalid JSON: %s", e)
                response: Optional[Dict[str, Any]] = make_error_response(None, PARSE_ERROR)
            else:
                response = self.handle_request(request)

            if response is not None:
                stdout.write(json.dumps(response) + "\n")
                stdout.flush()

        logger.info("Bruno MCP server stopped")

    def stop(self) -> None:
        self._running = False
