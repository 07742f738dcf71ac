"""
Value objects exchanged between the Bruno services and the tool surface.

Attributes use snake_case; ``to_dict()`` produces the camelCase shape that
tool clients see. Optional fields are omitted from ``to_dict()`` when unset.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RequestRecord:
    """One request file found under a collection root."""
    name: str
    file_path: str
    method: Optional[str] = None
    url: Optional[str] = None
    folder: Optional[str] = None  # relative to the collection root

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "filePath": self.file_path}
        if self.method:
            result["method"] = self.method
        if self.url:
            result["url"] = self.url
        if self.folder:
            result["folder"] = self.folder
        return result


@dataclass
class RequestBody:
    type: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass
class RequestMetadata:
    type: str = "http"
    seq: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        if self.seq is not None:
            result["seq"] = self.seq
        return result


@dataclass
class RequestDetails:
    """Full parse of a single request file."""
    name: str
    method: str = "GET"
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[RequestBody] = None
    auth: str = "none"
    tests: List[str] = field(default_factory=list)
    metadata: RequestMetadata = field(default_factory=RequestMetadata)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "auth": self.auth,
            "tests": list(self.tests),
            "metadata": self.metadata.to_dict(),
        }
        if self.body is not None:
            result["body"] = self.body.to_dict()
        return result


@dataclass
class Environment:
    """An environment file under <collection>/environments/.

    ``variables`` is None when the file could not be read.
    """
    name: str
    path: str
    variables: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "path": self.path}
        if self.variables is not None:
            result["variables"] = dict(self.variables)
        return result


@dataclass
class EnvironmentValidation:
    valid: bool
    exists: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    variables: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "valid": self.valid,
            "exists": self.exists,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.variables is not None:
            result["variables"] = dict(self.variables)
        return result


@dataclass
class RunOptions:
    """Options for a runner invocation. None means "use the runner default"."""
    environment: Optional[str] = None
    env_variables: Optional[Dict[str, str]] = None
    folder_path: Optional[str] = None
    recursive: Optional[bool] = None
    tests_only: Optional[bool] = None
    bail: Optional[bool] = None
    reporter_json: Optional[str] = None
    reporter_junit: Optional[str] = None
    reporter_html: Optional[str] = None

    @property
    def has_custom_reporters(self) -> bool:
        return bool(self.reporter_json or self.reporter_junit or self.reporter_html)


@dataclass
class RunSummary:
    total_requests: int = 0
    passed_requests: int = 0
    failed_requests: int = 0
    total_duration: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "passedRequests": self.passed_requests,
            "failedRequests": self.failed_requests,
            "totalDuration": self.total_duration,
        }


@dataclass
class AssertionOutcome:
    name: Optional[str]
    passed: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "passed": self.passed}
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class RequestSnapshot:
    method: Optional[str] = None
    url: Optional[str] = None
    headers: Optional[Dict[str, Any]] = None
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "body": self.body,
        }


@dataclass
class ResponseSnapshot:
    status: Optional[int] = None
    status_text: Optional[str] = None
    headers: Optional[Dict[str, Any]] = None
    body: Any = None
    response_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "statusText": self.status_text,
            "headers": self.headers,
            "body": self.body,
            "responseTime": self.response_time,
        }


@dataclass
class RequestOutcome:
    """Normalized result of one executed request."""
    name: str
    passed: bool
    status: int = 0
    duration: float = 0
    error: Optional[str] = None
    request: Optional[RequestSnapshot] = None
    response: Optional[ResponseSnapshot] = None
    assertions: Optional[List[AssertionOutcome]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "passed": self.passed,
            "status": self.status,
            "duration": self.duration,
        }
        if self.error is not None:
            result["error"] = self.error
        if self.request is not None:
            result["request"] = self.request.to_dict()
        if self.response is not None:
            result["response"] = self.response.to_dict()
        if self.assertions is not None:
            result["assertions"] = [a.to_dict() for a in self.assertions]
        return result


@dataclass
class RunResult:
    """Outcome of a runner invocation.

    ``summary`` and ``results`` are only set when the runner's output could
    be parsed; otherwise the raw stdout/stderr/exit code is all there is.
    """
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    summary: Optional[RunSummary] = None
    results: Optional[List[RequestOutcome]] = None

    @property
    def is_structured(self) -> bool:
        return self.summary is not None or self.results is not None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
        }
        if self.summary is not None:
            result["summary"] = self.summary.to_dict()
        if self.results is not None:
            result["results"] = [r.to_dict() for r in self.results]
        return result


@dataclass
class CollectionSummary:
    has_manifest: bool = False
    total_requests: int = 0
    valid_requests: int = 0
    invalid_requests: int = 0
    environments: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasManifest": self.has_manifest,
            "hasBrunoJson": self.has_manifest,
            "totalRequests": self.total_requests,
            "validRequests": self.valid_requests,
            "invalidRequests": self.invalid_requests,
            "environments": self.environments,
        }


@dataclass
class CollectionValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    summary: CollectionSummary = field(default_factory=CollectionSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "summary": self.summary.to_dict(),
        }
