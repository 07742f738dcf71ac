"""
Runs requests and collections through the Bruno CLI and normalizes the
results.

The runner writes its JSON report to a temporary file passed via
``--output``. When custom reporters are requested, or the file cannot be
read, the JSON is looked for in stdout instead. A non-zero exit code only
means some tests failed; the output is still parsed. The runner's report
shape varies between versions, so every field is resolved from a list of
candidate keys.
"""

import json
import logging
import os
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config.schema import TimeoutConfig
from ..errors import (
    ExecutionTimeoutError,
    NotACollectionRootError,
    RequestNotFoundError,
    RunnerError,
    RunnerNotFoundError,
    UnknownExecutionError,
)
from ..models import (
    AssertionOutcome,
    RequestOutcome,
    RequestSnapshot,
    ResponseSnapshot,
    RunOptions,
    RunResult,
    RunSummary,
)
from .discovery import CollectionDiscoverer, REQUEST_EXTENSION

logger = logging.getLogger(__name__)

RUNNER_NOT_FOUND_SIGNATURES = ("command not found", "not recognized", "ENOENT")
NOT_A_ROOT_SIGNATURE = "You can run only at the root of a collection"


def normalize_environment_name(environment: str) -> str:
    """Reduce an environment path to the bare name the runner expects.

    ``/abs/envs/dev.bru`` and ``envs/dev.bru`` become ``dev``;
    ``dev.bru`` becomes ``dev``; ``dev`` is left alone.
    """
    if os.path.isabs(environment) or "/" in environment or "\\" in environment:
        base = environment.replace("\\", "/").rsplit("/", 1)[-1]
        if base.endswith(REQUEST_EXTENSION):
            base = base[:-len(REQUEST_EXTENSION)]
        return base
    if environment.endswith(REQUEST_EXTENSION):
        return environment[:-len(REQUEST_EXTENSION)]
    return environment


def build_run_args(target: str, output_file: str, options: RunOptions, recursive: bool = False) -> List[str]:
    """Build the runner arguments, excluding the runner command itself.

    Args:
        target: Request file or folder, relative to the collection root
        output_file: Where the runner writes its JSON report
        options: Run options
        recursive: Add ``-r`` (collection runs)

    Returns:
        Argument list starting with ``run``
    """
    args = ["run", target]
    if recursive:
        args.append("-r")
    args.extend(["--format", "json", "--output", output_file])

    if options.environment:
        args.extend(["--env", normalize_environment_name(options.environment)])

    for key, value in (options.env_variables or {}).items():
        args.extend(["--env-var", f"{key}={value}"])

    if options.tests_only:
        args.append("--tests-only")
    if options.bail:
        args.append("--bail")

    if options.reporter_json:
        args.extend(["--reporter-json", options.reporter_json])
    if options.reporter_junit:
        args.extend(["--reporter-junit", options.reporter_junit])
    if options.reporter_html:
        args.extend(["--reporter-html", options.reporter_html])

    return args


def _first(*values: Any, default: Any = None) -> Any:
    """First truthy value, else ``default``."""
    for value in values:
        if value:
            return value
    return default


def _nested(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _as_error(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get("message"):
        return str(value["message"])
    return str(value)


def extract_json(text: str) -> Any:
    """Find a JSON object or array in runner stdout.

    Tries the whole trimmed text first, then the first position from which
    a complete JSON object or array decodes.

    Returns:
        Decoded dict or list, or None
    """
    if not text or not text.strip():
        return None

    trimmed = text.strip()
    if trimmed[0] in "{[":
        try:
            return json.loads(trimmed)
        except json.JSONDecodeError:
            pass

    decoder = json.JSONDecoder()
    for index, ch in enumerate(text):
        if ch not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            continue
        if isinstance(value, (dict, list)):
            return value
    return None


def _parse_assertions(entries: Any) -> List[AssertionOutcome]:
    if not isinstance(entries, list):
        return []
    assertions = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        failed = entry.get("status") == "fail"
        assertions.append(AssertionOutcome(
            name=_first(entry.get("description"), entry.get("name"), entry.get("test")),
            passed=entry.get("status") == "pass" or entry.get("passed") is True,
            error=_as_error(_first(entry.get("error"), entry.get("message"))) if failed else None,
        ))
    return assertions


def _parse_result(raw: Dict[str, Any]) -> RequestOutcome:
    response = raw.get("response") if isinstance(raw.get("response"), dict) else None
    request = raw.get("request") if isinstance(raw.get("request"), dict) else None

    outcome = RequestOutcome(
        name=_first(raw.get("suitename"), raw.get("name"), _nested(raw, "test", "filename"), default="Unknown"),
        passed=raw.get("error") is None,
        status=_first(_nested(response, "status"), default=0),
        duration=_first(_nested(response, "responseTime"), raw.get("runtime"), default=0),
        error=_as_error(raw.get("error")),
    )

    if request is not None:
        outcome.request = RequestSnapshot(
            method=request.get("method"),
            url=request.get("url"),
            headers=request.get("headers"),
            body=_first(request.get("body"), request.get("data")),
        )

    if response is not None:
        outcome.response = ResponseSnapshot(
            status=response.get("status"),
            status_text=response.get("statusText"),
            headers=response.get("headers"),
            body=_first(response.get("data"), response.get("body")),
            response_time=response.get("responseTime"),
        )

    test_results = _first(raw.get("testResults"), raw.get("tests"), raw.get("assertions"))
    assertions = _parse_assertions(test_results) + _parse_assertions(raw.get("assertionResults"))
    if assertions:
        outcome.assertions = assertions

    return outcome


def _parse_item(item: Dict[str, Any]) -> RequestOutcome:
    response = item.get("response") if isinstance(item.get("response"), dict) else None
    request = item.get("request") if isinstance(item.get("request"), dict) else None

    outcome = RequestOutcome(
        name=_first(item.get("name"), default="Unknown"),
        passed=item.get("status") == "passed" or item.get("passed") is not False,
        status=_first(_nested(response, "status"), default=0),
        duration=_first(item.get("duration"), default=0),
    )

    if request is not None:
        outcome.request = RequestSnapshot(
            method=request.get("method"),
            url=request.get("url"),
            headers=request.get("headers"),
            body=request.get("body"),
        )

    if response is not None:
        outcome.response = ResponseSnapshot(
            status=response.get("status"),
            status_text=response.get("statusText"),
            headers=response.get("headers"),
            body=_first(response.get("body"), response.get("data")),
            response_time=_first(response.get("time"), response.get("responseTime")),
        )

    if isinstance(item.get("tests"), list):
        outcome.assertions = [
            AssertionOutcome(
                name=_first(t.get("name"), t.get("test")),
                passed=bool(t.get("passed")) or t.get("status") == "passed",
                error=_as_error(t.get("error")),
            )
            for t in item["tests"]
            if isinstance(t, dict)
        ]

    return outcome


def normalize_run_output(stdout: str, stderr: str, exit_code: int, report: Any) -> RunResult:
    """Map a decoded runner report onto RunResult.

    Args:
        stdout: Captured runner stdout
        stderr: Captured runner stderr
        exit_code: Runner exit code
        report: Decoded JSON report, or None when none was found

    Returns:
        RunResult; summary/results stay None when the report lacks them
    """
    result = RunResult(stdout=stdout or "", stderr=stderr or "", exit_code=exit_code or 0)

    if isinstance(report, list):
        report = report[0] if report else None
    if not isinstance(report, dict):
        return result

    summary = report.get("summary")
    if isinstance(summary, dict):
        result.summary = RunSummary(
            total_requests=_first(summary.get("totalRequests"), summary.get("total"), default=0),
            passed_requests=_first(summary.get("passedRequests"), summary.get("passed"), default=0),
            failed_requests=_first(summary.get("failedRequests"), summary.get("failed"), default=0),
            total_duration=_first(summary.get("totalDuration"), summary.get("duration"), default=0),
        )

    if isinstance(report.get("results"), list):
        result.results = [_parse_result(r) for r in report["results"] if isinstance(r, dict)]
    elif isinstance(report.get("items"), list):
        result.results = [_parse_item(i) for i in report["items"] if isinstance(i, dict)]

    return result


class RequestExecutor:
    """Invokes the Bruno CLI for single requests and whole collections."""

    def __init__(
        self,
        command: Sequence[str],
        discoverer: Optional[CollectionDiscoverer] = None,
        timeouts: Optional[TimeoutConfig] = None,
    ):
        """Initialize the executor.

        Args:
            command: Runner command, e.g. ``["bru"]`` or ``["node", "bru.js"]``
            discoverer: Used to resolve request names to files
            timeouts: Per-operation timeouts in milliseconds
        """
        self.command = list(command)
        self.discoverer = discoverer or CollectionDiscoverer()
        self.timeouts = timeouts or TimeoutConfig()

    def run_request(
        self,
        collection_root: Union[str, Path],
        request_name: str,
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        """Run one request of a collection.

        Raises:
            NotFoundError: The collection path does not exist
            RequestNotFoundError: No request matches ``request_name``
            RunnerNotFoundError, NotACollectionRootError, RunnerError,
            ExecutionTimeoutError, UnknownExecutionError: The runner could
                not do its job
        """
        options = options or RunOptions()
        request_file = self.discoverer.find_request_file(collection_root, request_name)
        if request_file is None:
            raise RequestNotFoundError(request_name)

        target = os.path.relpath(request_file, collection_root)
        return self._execute(collection_root, target, options, False, self.timeouts.request)

    def run_collection(
        self,
        collection_root: Union[str, Path],
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        """Run a collection, or one folder of it when ``folder_path`` is set."""
        options = options or RunOptions()
        target = options.folder_path or "."
        recursive = options.recursive is not False
        return self._execute(collection_root, target, options, recursive, self.timeouts.collection)

    def _execute(
        self,
        collection_root: Union[str, Path],
        target: str,
        options: RunOptions,
        recursive: bool,
        timeout_ms: int,
    ) -> RunResult:
        output_file = os.path.join(tempfile.gettempdir(), f"bruno-result-{uuid.uuid4()}.json")
        args = self.command + build_run_args(target, output_file, options, recursive=recursive)
        logger.debug("Running %s in %s", " ".join(args), collection_root)

        try:
            try:
                proc = subprocess.run(
                    args,
                    cwd=str(collection_root),
                    env=dict(os.environ),
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=timeout_ms / 1000,
                    check=False,
                )
            except FileNotFoundError as e:
                raise RunnerNotFoundError(self.command[-1]) from e
            except subprocess.TimeoutExpired as e:
                raise ExecutionTimeoutError(timeout_ms) from e
            except OSError as e:
                raise UnknownExecutionError(f"Failed to start Bruno CLI: {e}") from e

            report = None
            if not options.has_custom_reporters:
                report = self._read_report(output_file)
            if report is None:
                report = extract_json(proc.stdout)
        finally:
            self._remove(output_file)

        result = normalize_run_output(proc.stdout, proc.stderr, proc.returncode, report)
        if proc.returncode != 0 and not result.is_structured:
            self._raise_for_failure(proc.stdout or "", proc.stderr or "", proc.returncode)
        return result

    def _read_report(self, output_file: str) -> Any:
        try:
            with open(output_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.debug("Could not read runner report %s: %s", output_file, e)
            return None

    def _remove(self, output_file: str) -> None:
        try:
            os.unlink(output_file)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temporary report %s: %s", output_file, e)

    def _raise_for_failure(self, stdout: str, stderr: str, exit_code: int) -> None:
        """Classify a failed run that produced no report.

        Returns normally when there is stdout worth showing as raw output.
        """
        if any(signature in stderr for signature in RUNNER_NOT_FOUND_SIGNATURES):
            raise RunnerNotFoundError(self.command[-1])
        if NOT_A_ROOT_SIGNATURE in stderr:
            raise NotACollectionRootError()
        if stderr.strip() and not stdout.strip():
            raise RunnerError(stderr, exit_code=exit_code)
        if not stderr.strip() and not stdout.strip():
            raise UnknownExecutionError(f"Bruno CLI exited with code {exit_code} and no output")
