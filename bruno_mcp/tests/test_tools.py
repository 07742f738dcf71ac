"""
Tests for the tool registry, tool handlers and response formatting.
"""

import pytest

from bruno_mcp.app import create_app
from bruno_mcp.errors import INTERNAL_ERROR, INVALID_PARAMS, ToolError
from bruno_mcp.models import RequestOutcome, ResponseSnapshot, RunResult, RunSummary
from bruno_mcp.tools import ToolRegistry, ToolStatus
from bruno_mcp.tools.formatters import format_run_result

from conftest import make_collection

TOOL_NAMES = [
    "bruno_run_request",
    "bruno_run_collection",
    "bruno_list_requests",
    "bruno_discover_collections",
    "bruno_list_environments",
    "bruno_get_request_details",
    "bruno_validate_environment",
    "bruno_validate_collection",
    "bruno_health_check",
]

RUN_REPORT = {
    "summary": {"totalRequests": 1, "passedRequests": 1, "failedRequests": 0, "totalDuration": 12},
    "results": [{
        "test": {"filename": "Get Users.bru"},
        "response": {"status": 200, "statusText": "OK", "responseTime": 12},
    }],
}


@pytest.fixture
def app(fake_runner):
    return create_app(bruno_path="bru")


def _tool_error(app, name, arguments) -> ToolError:
    with pytest.raises(ToolError) as exc_info:
        app.call_tool(name, arguments)
    return exc_info.value


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_duplicate_names_rejected(self):
        """A name can only be registered once."""
        registry = ToolRegistry()
        registry.register("t", lambda args: "", "desc", {})

        with pytest.raises(ValueError):
            registry.register("t", lambda args: "", "desc", {})

    def test_disabled_tools_are_hidden(self):
        """Disabled tools stay registered but cannot be listed or called."""
        registry = ToolRegistry()
        registry.register("on", lambda args: "on", "d", {}, category="a")
        registry.register("off", lambda args: "off", "d", {}, status=ToolStatus.DISABLED, category="a")

        assert registry.has("off")
        assert registry.get_handler("off") is None
        assert registry.list_names() == ["on"]
        assert [s["name"] for s in registry.get_tool_schemas()] == ["on"]
        assert registry.list_by_category("a") == ["on", "off"]
        assert len(registry) == 2


class TestBuildRegistry:
    """Tests for the registered Bruno tools."""

    def test_nine_tools(self, app):
        """Every tool is registered, in a stable order."""
        assert app.registry.list_names() == TOOL_NAMES
        assert app.registry.get_categories() == ["execution", "discovery", "validation", "diagnostics"]

    def test_input_schemas_use_camel_case(self, app):
        """Argument schemas advertise the camelCase names clients send."""
        schema = app.registry.get("bruno_run_request").to_mcp_schema()["inputSchema"]

        assert set(schema["required"]) == {"collectionPath", "requestName"}
        for key in ("environment", "enviroment", "envVariables", "reporterJson", "dryRun"):
            assert key in schema["properties"]
        assert "title" not in schema
        assert all("title" not in prop for prop in schema["properties"].values())

    def test_discover_schema_defaults(self, app):
        """maxDepth defaults to 5."""
        schema = app.registry.get("bruno_discover_collections").parameters

        assert schema["properties"]["maxDepth"]["default"] == 5
        assert schema["required"] == ["searchPath"]


class TestDiscoveryTools:
    """Tests for the listing and discovery tools."""

    def test_list_requests(self, app, collection):
        """Requests are listed with method, URL and folder."""
        text = app.call_tool("bruno_list_requests", {"collectionPath": str(collection)})

        assert text.startswith("Found 2 request(s):")
        assert "• Get Users\n  GET {{baseUrl}}/users" in text
        assert "• Create User" in text
        assert "  Folder: users" in text

    def test_list_requests_not_a_collection(self, app, tmp_path):
        """Service failures surface as internal errors."""
        plain = tmp_path / "plain"
        plain.mkdir()

        error = _tool_error(app, "bruno_list_requests", {"collectionPath": str(plain)})

        assert error.code == INTERNAL_ERROR
        assert error.message.startswith("Failed to list requests: Not a valid Bruno collection")

    def test_missing_argument(self, app):
        """Missing required arguments are invalid params."""
        error = _tool_error(app, "bruno_list_requests", {})

        assert error.code == INVALID_PARAMS
        assert "collectionPath" in error.message

    def test_discover_collections(self, app, tmp_path, collection):
        """Collections below the search path are numbered."""
        text = app.call_tool("bruno_discover_collections", {"searchPath": str(tmp_path), "maxDepth": 2})

        assert "Found 1 Bruno collection(s):" in text
        assert f"1. {collection}" in text

    def test_discover_nothing(self, app, tmp_path):
        """An empty search explains what a collection is."""
        empty = tmp_path / "empty"
        empty.mkdir()

        text = app.call_tool("bruno_discover_collections", {"searchPath": str(empty)})

        assert text.startswith(f"No Bruno collections found in: {empty}")

    def test_list_environments_masks_values(self, app, collection):
        """Sensitive variable values are hidden in listings."""
        text = app.call_tool("bruno_list_environments", {"collectionPath": str(collection)})

        assert "Found 1 environment(s):" in text
        assert "    - baseUrl: http://localhost:3000" in text
        assert "    - apiToken: ***" in text

    def test_get_request_details_masks_secrets(self, app, tmp_path):
        """Credentials in request files are redacted in the response."""
        root = make_collection(tmp_path / "c", requests={
            "auth.bru": (
                "meta {\n  name: Me\n  seq: 3\n}\n\nget {\n  url: /me\n}\n\n"
                "headers {\n  Authorization: Bearer abc123\n}\n"
            ),
        })

        text = app.call_tool("bruno_get_request_details", {"collectionPath": str(root), "requestName": "Me"})

        assert "=== Request Details: Me ===" in text
        assert "abc123" not in text
        assert "[REDACTED]" in text
        assert "Sequence: 3" in text

    def test_get_request_details_unknown(self, app, collection):
        """Unknown request names are internal errors naming the request."""
        error = _tool_error(app, "bruno_get_request_details", {
            "collectionPath": str(collection), "requestName": "Nope",
        })

        assert error.code == INTERNAL_ERROR
        assert 'Request "Nope" not found in collection' in error.message


class TestValidationTools:
    """Tests for the validation tools."""

    def test_validate_environment(self, app, collection):
        """A valid environment shows its variables, masking sensitive ones."""
        text = app.call_tool("bruno_validate_environment", {
            "collectionPath": str(collection), "environmentName": "dev",
        })

        assert "✓ Status: Valid" in text
        assert "  baseUrl: http://localhost:3000" in text
        assert "  apiToken: *** (masked)" in text

    def test_validate_missing_environment(self, app, collection):
        """A missing environment is reported in the text, not raised."""
        text = app.call_tool("bruno_validate_environment", {
            "collectionPath": str(collection), "environmentName": "prod",
        })

        assert "✗ Status: Not Found" in text
        assert "Environment file not found" in text

    def test_validate_collection(self, app, collection):
        """A clean collection is ready to use."""
        text = app.call_tool("bruno_validate_collection", {"collectionPath": str(collection)})

        assert "✓ Collection is valid" in text
        assert "  bruno.json: ✓ Found" in text
        assert "Collection is ready to use!" in text

    def test_validate_collection_without_manifest(self, app, tmp_path):
        """A missing manifest is reported, not raised."""
        root = tmp_path / "bare"
        root.mkdir()

        text = app.call_tool("bruno_validate_collection", {"collectionPath": str(root)})

        assert "✗ Collection has errors" in text
        assert "  ✗ bruno.json not found in collection root" in text


class TestExecutionTools:
    """Tests for the run tools."""

    def test_run_request(self, app, collection, fake_runner):
        """The run result is formatted; the environment typo alias works."""
        fake_runner.report = RUN_REPORT

        text = app.call_tool("bruno_run_request", {
            "collectionPath": str(collection),
            "requestName": "Get Users",
            "enviroment": "staging",
        })

        args = fake_runner.last_args
        assert args[args.index("--env") + 1] == "staging"
        assert "=== Execution Summary ===" in text
        assert "[✓] Get Users.bru" in text

    def test_unsafe_env_variables_dropped(self, app, collection, fake_runner):
        """Variables failing the safety checks never reach the runner."""
        fake_runner.report = RUN_REPORT

        app.call_tool("bruno_run_request", {
            "collectionPath": str(collection),
            "requestName": "Get Users",
            "envVariables": {"userId": "42", "evil": "$(whoami)"},
        })

        args = fake_runner.last_args
        assert "userId=42" in args
        assert not any(arg.startswith("evil=") for arg in args)

    def test_runner_failure(self, app, collection, fake_runner):
        """Runner errors come back as masked internal errors."""
        fake_runner.returncode = 1
        fake_runner.stderr = "auth failed, token=abc123"

        error = _tool_error(app, "bruno_run_request", {
            "collectionPath": str(collection), "requestName": "Get Users",
        })

        assert error.code == INTERNAL_ERROR
        assert error.message.startswith("Failed to run request: Bruno CLI error")
        assert "abc123" not in error.message

    def test_request_dry_run(self, app, collection, fake_runner):
        """Dry runs parse the request without starting the runner."""
        text = app.call_tool("bruno_run_request", {
            "collectionPath": str(collection),
            "requestName": "Get Users",
            "environment": "dev",
            "envVariables": {"userId": "42"},
            "dryRun": True,
        })

        assert fake_runner.calls == []
        assert "=== DRY RUN: Request Validation ===" in text
        assert "Method: GET" in text
        assert "  Tests: 2" in text
        assert "Environment: dev" in text
        assert "Environment Variables: 1 provided" in text

    def test_collection_dry_run_with_folder(self, app, collection, fake_runner):
        """The folder filter limits the dry run to matching requests."""
        text = app.call_tool("bruno_run_collection", {
            "collectionPath": str(collection),
            "folderPath": "users",
            "dryRun": True,
        })

        assert fake_runner.calls == []
        assert "Total Requests: 1" in text
        assert "  ✓ Create User - POST {{baseUrl}}/users" in text
        assert "Get Users" not in text
        assert "Folder Filter: users" in text

    def test_run_collection(self, app, collection, fake_runner):
        """Collection runs go through the runner recursively."""
        fake_runner.report = RUN_REPORT

        text = app.call_tool("bruno_run_collection", {"collectionPath": str(collection)})

        assert fake_runner.last_args[:4] == ["bru", "run", ".", "-r"]
        assert "Total Requests: 1" in text

    def test_traversal_in_request_name(self, app, collection, fake_runner):
        """Path traversal in request names is refused before anything runs."""
        error = _tool_error(app, "bruno_run_request", {
            "collectionPath": str(collection), "requestName": "../../etc/passwd",
        })

        assert error.code == INVALID_PARAMS
        assert error.message.startswith("Security validation failed:")
        assert fake_runner.calls == []

    def test_absolute_folder_refused(self, app, collection):
        """Folder paths must be relative to the collection."""
        error = _tool_error(app, "bruno_run_collection", {
            "collectionPath": str(collection), "folderPath": "/etc",
        })

        assert error.code == INVALID_PARAMS


class TestAllowedPaths:
    """Tests for the path allow-list."""

    def test_outside_allowed_paths(self, tmp_path, monkeypatch, collection, fake_runner):
        """Collections outside the allowed directories are refused."""
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        monkeypatch.setenv("BRUNO_MCP_ALLOWED_PATHS", str(allowed))
        app = create_app(bruno_path="bru")

        error = _tool_error(app, "bruno_list_requests", {"collectionPath": str(collection)})

        assert error.code == INVALID_PARAMS
        assert "not within allowed directories" in error.message

    def test_inside_allowed_paths(self, tmp_path, monkeypatch, collection, fake_runner):
        """Collections below an allowed directory are served."""
        monkeypatch.setenv("BRUNO_MCP_ALLOWED_PATHS", str(tmp_path))
        app = create_app(bruno_path="bru")

        assert "Found 2 request(s)" in app.call_tool("bruno_list_requests", {"collectionPath": str(collection)})


class TestHealthCheck:
    """Tests for the health check tool."""

    def test_runner_available(self, app, fake_runner):
        """The runner version is reported when it can be started."""
        fake_runner.stdout = "1.20.0\n"

        text = app.call_tool("bruno_health_check", {"includeMetrics": True, "includeCacheStats": True})

        assert fake_runner.last_args == ["bru", "--version"]
        assert "Status: Available" in text
        assert "Version: 1.20.0" in text
        assert "Cache TTL: 300000ms" in text
        assert "=== Performance Metrics ===" in text
        assert "=== Cache Statistics ===" in text
        assert text.endswith("All systems operational")

    def test_runner_missing(self, app, fake_runner):
        """A runner that cannot start is reported as unavailable."""
        fake_runner.raises = FileNotFoundError("bru")

        text = app.call_tool("bruno_health_check", {})

        assert "Status: Not Available" in text
        assert "=== Performance Metrics ===" not in text
        assert text.endswith("Warning: Bruno CLI not available")

    def test_metrics_recorded_per_call(self, app, collection):
        """Every tool call, failed or not, is recorded."""
        app.call_tool("bruno_list_requests", {"collectionPath": str(collection)})
        with pytest.raises(ToolError):
            app.call_tool("bruno_list_requests", {})

        summary = app.performance.get_metrics_summary()

        assert summary["total_executions"] == 2
        assert summary["by_tool"]["bruno_list_requests"]["success_rate"] == 50


class TestFormatRunResult:
    """Tests for format_run_result."""

    def test_headers_and_body_truncation(self):
        """Important headers come first, extras are capped and long bodies cut."""
        headers = {f"x-extra-{i}": str(i) for i in range(7)}
        headers["content-type"] = "application/json"
        result = RunResult(
            summary=RunSummary(total_requests=1, passed_requests=1),
            results=[RequestOutcome(
                name="big",
                passed=True,
                response=ResponseSnapshot(status=200, headers=headers, body="a" * 2500),
            )],
        )

        text = format_run_result(result)

        lines = text.split("\n")
        header_start = lines.index("  Response Headers:")
        assert lines[header_start + 1] == "    content-type: application/json"
        assert "    x-extra-4: 4" in lines
        assert "    x-extra-5: 5" not in lines
        assert "    ... and 2 more headers" in lines
        assert "    [Truncated - 2500 total characters]" in lines

    def test_generated_reports(self):
        """Report file lines from stdout are listed."""
        result = RunResult(
            stdout="Wrote json results to out.json\nWrote junit results to out.xml\nDone",
            summary=RunSummary(),
        )

        text = format_run_result(result)

        assert "=== Generated Reports ===" in text
        assert "  Wrote junit results to out.xml" in text
        assert "=== Raw Output ===" not in text

    def test_raw_fallback(self):
        """Unstructured results show raw stdout and stderr."""
        text = format_run_result(RunResult(stdout="plain text", stderr="a warning", exit_code=1))

        assert text.split("\n") == ["", "=== Raw Output ===", "plain text", "", "=== Errors ===", "a warning"]
