"""
Text renderers for tool responses.

Every function takes model objects and returns the text sent back to the
client. Secret masking of the final text is left to the caller.
"""

import json
import platform
import sys
import time
from typing import Any, Dict, List, Optional

from .. import __version__
from ..config.schema import BrunoMCPConfig
from ..models import (
    CollectionValidationResult,
    Environment,
    EnvironmentValidation,
    RequestDetails,
    RequestOutcome,
    RequestRecord,
    RunResult,
)
from ..performance import format_cache_stats, format_metrics

IMPORTANT_HEADERS = ("content-type", "content-length", "date", "server")
MAX_EXTRA_HEADERS = 5
MAX_BODY_LENGTH = 2000
MAX_LISTED_VARIABLES = 3
MAX_VARIABLE_DISPLAY = 50

# Variable names whose values are never displayed
MASKED_KEY_MARKERS = ("password", "secret", "token", "key")

_STARTED_AT = time.monotonic()


def is_masked_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in MASKED_KEY_MARKERS)


def _body_text(body: Any) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, indent=2, default=str)


def _format_headers(headers: Dict[str, Any]) -> List[str]:
    lines = ["  Response Headers:"]
    shown = set()
    for key in IMPORTANT_HEADERS:
        if headers.get(key):
            lines.append(f"    {key}: {headers[key]}")
            shown.add(key)

    extra = 0
    for key, value in headers.items():
        if key in shown:
            continue
        if extra >= MAX_EXTRA_HEADERS:
            break
        lines.append(f"    {key}: {value}")
        extra += 1

    remaining = len(headers) - len(shown) - extra
    if remaining > 0:
        lines.append(f"    ... and {remaining} more headers")
    return lines


def _format_outcome(outcome: RequestOutcome) -> List[str]:
    lines = ["", f"[{'✓' if outcome.passed else '✗'}] {outcome.name}"]

    if outcome.request is not None:
        lines.append(f"  Request: {outcome.request.method or 'GET'} {outcome.request.url or ''}")

    response = outcome.response
    if response is not None:
        lines.append(f"  Status: {response.status} {response.status_text or ''}".rstrip())
        lines.append(f"  Duration: {response.response_time or outcome.duration}ms")

        if response.headers:
            lines.extend(_format_headers(response.headers))

        if response.body is not None:
            lines.append("  Response Body:")
            body = _body_text(response.body)
            if len(body) > MAX_BODY_LENGTH:
                lines.append(f"    {body[:MAX_BODY_LENGTH]}...")
                lines.append(f"    [Truncated - {len(body)} total characters]")
            else:
                lines.extend(f"    {line}" for line in body.split("\n"))
    elif outcome.status:
        lines.append(f"  Status: {outcome.status}")
        lines.append(f"  Duration: {outcome.duration}ms")

    if outcome.error:
        lines.append(f"  Error: {outcome.error}")

    if outcome.assertions:
        lines.append("  Assertions:")
        for assertion in outcome.assertions:
            lines.append(f"    {'✓' if assertion.passed else '✗'} {assertion.name}")
            if not assertion.passed and assertion.error:
                lines.append(f"      Error: {assertion.error}")

    return lines


def format_run_result(result: RunResult) -> str:
    """Render a RunResult: summary, per-request results, reports, raw output."""
    output: List[str] = []

    if result.summary is not None:
        output.extend([
            "=== Execution Summary ===",
            f"Total Requests: {result.summary.total_requests}",
            f"Passed: {result.summary.passed_requests}",
            f"Failed: {result.summary.failed_requests}",
            f"Duration: {result.summary.total_duration}ms",
            "",
        ])

    if result.results:
        output.append("=== Request Results ===")
        for outcome in result.results:
            output.extend(_format_outcome(outcome))

    report_lines = [
        line.strip()
        for line in result.stdout.split("\n")
        if "Wrote" in line and any(kind in line for kind in ("json", "junit", "html"))
    ]
    if report_lines:
        output.extend(["", "=== Generated Reports ==="])
        output.extend(f"  {line}" for line in report_lines)

    if not result.is_structured:
        if result.stdout:
            output.extend(["", "=== Raw Output ===", result.stdout])
        if result.stderr:
            output.extend(["", "=== Errors ===", result.stderr])

    return "\n".join(output)


def format_request_list(requests: List[RequestRecord]) -> str:
    if not requests:
        return "No requests found in the collection."

    output = [f"Found {len(requests)} request(s):", ""]
    for record in requests:
        output.append(f"• {record.name}")
        if record.method and record.url:
            output.append(f"  {record.method} {record.url}")
        if record.folder:
            output.append(f"  Folder: {record.folder}")
    return "\n".join(output)


def format_collection_list(search_path: str, collections: List[str]) -> str:
    if not collections:
        return "\n".join([
            f"No Bruno collections found in: {search_path}",
            "",
            "A Bruno collection is a directory containing a bruno.json file.",
        ])

    output = [f"Found {len(collections)} Bruno collection(s):", ""]
    output.extend(f"{index}. {path}" for index, path in enumerate(collections, start=1))
    return "\n".join(output)


def format_environment_list(environments: List[Environment]) -> str:
    if not environments:
        return "\n".join([
            "No environments found in this collection.",
            "",
            'Environments are stored in the "environments" directory with .bru extension.',
        ])

    output = [f"Found {len(environments)} environment(s):", ""]
    for environment in environments:
        output.append(f"• {environment.name}")
        output.append(f"  Path: {environment.path}")

        variables = environment.variables or {}
        if variables:
            output.append(f"  Variables: {len(variables)}")
            for key, value in list(variables.items())[:MAX_LISTED_VARIABLES]:
                if is_masked_key(key):
                    shown = "***"
                elif len(value) > MAX_VARIABLE_DISPLAY:
                    shown = value[:MAX_VARIABLE_DISPLAY - 3] + "..."
                else:
                    shown = value
                output.append(f"    - {key}: {shown}")
            if len(variables) > MAX_LISTED_VARIABLES:
                output.append(f"    ... and {len(variables) - MAX_LISTED_VARIABLES} more")
        output.append("")
    return "\n".join(output)


def format_environment_validation(name: str, result: EnvironmentValidation) -> str:
    output = [f"=== Environment Validation: {name} ===", ""]

    if not result.exists or not result.valid:
        output.append(f"✗ Status: {'Not Found' if not result.exists else 'Invalid'}")
        output.extend(["", "Errors:"])
        output.extend(f"  • {error}" for error in result.errors)
    else:
        output.extend(["✓ Status: Valid", ""])
        if result.variables:
            output.extend([f"Variables: {len(result.variables)}", ""])
            for key, value in result.variables.items():
                shown = "*** (masked)" if is_masked_key(key) else value
                output.append(f"  {key}: {shown}")
            output.append("")

    if result.warnings:
        output.append("Warnings:")
        output.extend(f"  ⚠ {warning}" for warning in result.warnings)

    return "\n".join(output)


def format_request_details(details: RequestDetails) -> str:
    output = [
        f"=== Request Details: {details.name} ===",
        "",
        f"Method: {details.method}",
        f"URL: {details.url}",
        f"Auth: {details.auth}",
        "",
    ]

    if details.headers:
        output.append("Headers:")
        output.extend(f"  {key}: {value}" for key, value in details.headers.items())
        output.append("")

    if details.body is not None:
        output.append(f"Body Type: {details.body.type}")
        output.append("Body Content:")
        output.extend(f"  {line}" for line in details.body.content.split("\n"))
    else:
        output.append("Body: none")
    output.append("")

    if details.tests:
        output.append(f"Tests: {len(details.tests)}")
        output.extend(f"  {index}. {test}" for index, test in enumerate(details.tests, start=1))
    else:
        output.append("Tests: none")
    output.append("")

    output.append("Metadata:")
    output.append(f"  Type: {details.metadata.type}")
    if details.metadata.seq is not None:
        output.append(f"  Sequence: {details.metadata.seq}")

    return "\n".join(output)


def format_request_dry_run(
    details: RequestDetails,
    environment: Optional[str] = None,
    env_variables: Optional[Dict[str, str]] = None,
) -> str:
    output = [
        "=== DRY RUN: Request Validation ===",
        "",
        "✓ Request validated successfully (HTTP call not executed)",
        "",
        f"Request: {details.name}",
        f"Method: {details.method}",
        f"URL: {details.url}",
        "",
        "Configuration Summary:",
        f"  Headers: {len(details.headers)}",
        f"  Body: {details.body.type if details.body else 'none'}",
        f"  Auth: {details.auth}",
        f"  Tests: {len(details.tests)}",
        "",
    ]
    output.extend(_dry_run_context(environment, env_variables))
    output.append("This was a dry run - no HTTP request was sent.")
    output.append("Remove dryRun parameter to execute the actual request.")
    return "\n".join(output)


def format_collection_dry_run(
    lines: List[str],
    folder_path: Optional[str] = None,
    environment: Optional[str] = None,
    env_variables: Optional[Dict[str, str]] = None,
) -> str:
    """Render a collection dry run from pre-built per-request lines."""
    output = [
        "=== DRY RUN: Collection Validation ===",
        "",
        "✓ Collection validated successfully (HTTP calls not executed)",
        "",
        f"Total Requests: {len(lines)}",
        "",
        "Requests that would be executed:",
    ]
    output.extend(f"  {line}" for line in lines)
    output.append("")

    if folder_path:
        output.extend([f"Folder Filter: {folder_path}", ""])
    output.extend(_dry_run_context(environment, env_variables))
    output.append("This was a dry run - no HTTP requests were sent.")
    output.append("Remove dryRun parameter to execute the actual collection.")
    return "\n".join(output)


def _dry_run_context(environment: Optional[str], env_variables: Optional[Dict[str, str]]) -> List[str]:
    lines: List[str] = []
    if environment:
        lines.extend([f"Environment: {environment}", ""])
    if env_variables:
        lines.extend([f"Environment Variables: {len(env_variables)} provided", ""])
    return lines


def format_collection_validation(result: CollectionValidationResult) -> str:
    summary = result.summary
    output = [
        "=== Collection Validation ===",
        "",
        "✓ Collection is valid" if result.valid else "✗ Collection has errors",
        "",
        "Summary:",
        f"  bruno.json: {'✓ Found' if summary.has_manifest else '✗ Missing'}",
        f"  Total Requests: {summary.total_requests}",
        f"  Valid Requests: {summary.valid_requests}",
        f"  Invalid Requests: {summary.invalid_requests}",
        f"  Environments: {summary.environments}",
        "",
    ]

    if result.errors:
        output.append("Errors:")
        output.extend(f"  ✗ {error}" for error in result.errors)
        output.append("")

    if result.warnings:
        output.append("Warnings:")
        output.extend(f"  ⚠ {warning}" for warning in result.warnings)
        output.append("")

    if result.valid and not result.warnings:
        output.append("Collection is ready to use!")

    return "\n".join(output)


def format_health_check(
    config: BrunoMCPConfig,
    cli_available: bool,
    cli_version: Optional[str],
    metrics_summary: Optional[Dict[str, Any]] = None,
    cache_stats: Optional[Dict[str, Dict[str, Any]]] = None,
) -> str:
    """Render server, runner and configuration status."""
    security = config.security
    performance = config.performance
    allowed = security.allowed_paths

    output = [
        "=== Bruno MCP Server Health Check ===",
        "",
        "Server Status: Running",
        f"Server Version: {__version__}",
        f"Python Version: {platform.python_version()}",
        f"Platform: {sys.platform} {platform.machine()}",
        f"Uptime: {int(time.monotonic() - _STARTED_AT)} seconds",
        "",
        "=== Bruno CLI ===",
        f"Status: {'Available' if cli_available else 'Not Available'}",
        f"Version: {cli_version or ('Unknown' if cli_available else 'Not available')}",
        "",
        "=== Configuration ===",
        f"Logging Level: {config.logging.level}",
        f"Retry Enabled: {'Yes' if config.retry.enabled else 'No'}",
        f"Security Enabled: {f'Yes ({len(allowed)} allowed paths)' if allowed else 'No restrictions'}",
        f"Secret Masking: {'Enabled' if security.mask_secrets else 'Disabled'}",
        f"Cache Enabled: {'Yes' if performance.cache_enabled else 'No'}",
        f"Cache TTL: {performance.cache_ttl}ms",
        "",
    ]

    if metrics_summary is not None:
        output.extend([format_metrics(metrics_summary), ""])
    if cache_stats is not None:
        output.extend([format_cache_stats(cache_stats), ""])

    output.append("=== Status ===")
    output.append("All systems operational" if cli_available else "Warning: Bruno CLI not available")
    return "\n".join(output)
