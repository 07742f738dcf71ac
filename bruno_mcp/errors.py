"""
Exceptions raised by the Bruno services and the tool surface.

Discovery and listing failures propagate to the caller as typed errors.
Validation-oriented operations fold their problems into report objects
instead of raising, and the request executor raises only when the runner
process itself could not do its job.
"""

from typing import Any, Dict, Optional


class BrunoError(Exception):
    """Base class for all errors raised by bruno_mcp."""
    pass


class ConfigError(BrunoError):
    """Configuration file is unreadable or does not match the schema."""
    pass


class NotFoundError(BrunoError):
    """A path that must exist is missing or is not a directory."""
    pass


class RequestNotFoundError(NotFoundError):
    """No request file in the collection matches the requested name."""

    def __init__(self, request_name: str):
        super().__init__(f'Request "{request_name}" not found in collection')
        self.request_name = request_name


class NotACollectionError(BrunoError):
    """Directory exists but has no bruno.json or collection.bru."""
    pass


class RunnerNotFoundError(BrunoError):
    """The Bruno CLI binary could not be started."""

    def __init__(self, command: str):
        super().__init__(
            f"Bruno CLI not found at: {command}. "
            "Install it with: npm install -g @usebruno/cli"
        )
        self.command = command


class NotACollectionRootError(BrunoError):
    """The runner refused to run because cwd is not a collection root."""

    def __init__(self):
        super().__init__(
            "Invalid collection directory. Bruno CLI must be run from the root "
            "of a Bruno collection. Ensure the directory contains a bruno.json "
            "or collection.bru file."
        )


class RunnerError(BrunoError):
    """The runner failed and reported something on stderr."""

    def __init__(self, stderr: str, exit_code: Optional[int] = None):
        super().__init__(f"Bruno CLI error: {stderr.strip()}")
        self.stderr = stderr
        self.exit_code = exit_code


class ExecutionTimeoutError(BrunoError):
    """The runner did not finish within the configured timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Bruno CLI timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class UnknownExecutionError(BrunoError):
    """The runner failed without any diagnostic output."""
    pass


# JSON-RPC 2.0 error codes used by the tool surface
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
}


class ToolError(Exception):
    """Error surfaced to an RPC client, carrying a JSON-RPC error code."""

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


def make_error_response(
    req_id: Any,
    code: int,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 error response.

    Args:
        req_id: Request id the response answers (None for parse errors)
        code: JSON-RPC error code
        message: Error message, defaults to the standard text for the code

    Returns:
        Response envelope ready for serialization
    """
    return {
        "jsonrpc": "2.0",
        "id": req_id,
        "error": ToolError(code, message).to_dict(),
    }
