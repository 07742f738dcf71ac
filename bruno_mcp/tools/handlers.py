"""
Handlers for the Bruno tools.

Each handler takes the raw argument dict of a ``tools/call`` request,
validates it, runs the security checks, calls the Bruno services and
returns the response text. Failures are raised as ToolError.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError

from ..bruno_cli import BrunoCLI
from ..config.loader import ConfigLoader
from ..errors import INTERNAL_ERROR, INVALID_PARAMS, BrunoError, ToolError
from ..logger import log_security_event
from ..models import RunOptions
from ..performance import PerformanceManager
from ..security import SecurityCheck, sanitize_env_variables, validate_tool_parameters
from . import formatters
from .params import (
    DiscoverCollectionsParams,
    GetRequestDetailsParams,
    HealthCheckParams,
    ListEnvironmentsParams,
    ListRequestsParams,
    RunCollectionParams,
    RunRequestParams,
    ToolParams,
    ValidateCollectionParams,
    ValidateEnvironmentParams,
)

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=ToolParams)


class BrunoToolHandlers:
    """Tool handlers bound to one BrunoCLI facade."""

    def __init__(
        self,
        bruno: BrunoCLI,
        config_loader: Optional[ConfigLoader] = None,
        performance: Optional[PerformanceManager] = None,
    ):
        self.bruno = bruno
        self.config_loader = config_loader or bruno.config_loader
        self.performance = performance or bruno.performance

    @property
    def security(self):
        return self.config_loader.get_security()

    def _parse(self, model: Type[P], arguments: Optional[Dict[str, Any]]) -> P:
        try:
            return model.model_validate(arguments or {})
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolError(INVALID_PARAMS, f"Invalid arguments: {details}") from e

    def _check(self, action: str, **params: Any) -> SecurityCheck:
        """Run the security checks; raise when they fail."""
        check = validate_tool_parameters(self.security, **params)
        if not check.valid:
            log_security_event(
                "access_denied",
                f"{action} blocked: {', '.join(check.errors)}",
                "error",
                self.security,
            )
            raise ToolError(
                INVALID_PARAMS,
                self.config_loader.mask_secrets(
                    f"Security validation failed: {', '.join(check.errors)}"
                ),
            )
        for warning in check.warnings:
            log_security_event("env_var_validation", warning, "warning", self.security)
        return check

    def _call(self, failure: str, operation: Callable[[], Any]) -> Any:
        """Run a service call, turning its failures into masked ToolErrors."""
        try:
            return operation()
        except (BrunoError, OSError) as e:
            logger.debug("%s: %s", failure, e)
            raise ToolError(INTERNAL_ERROR, self.config_loader.mask_secrets(f"{failure}: {e}")) from e

    def _sanitized(self, env_variables: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not env_variables:
            return env_variables
        sanitized, _ = sanitize_env_variables(env_variables)
        return sanitized

    def run_request(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(RunRequestParams, arguments)
        self._check(
            "Run request",
            collection_path=params.collection_path,
            request_name=params.request_name,
            env_variables=params.env_variables,
        )

        if params.dry_run:
            details = self._call(
                "Dry run validation failed",
                lambda: self.bruno.get_request_details(params.collection_path, params.request_name),
            )
            return formatters.format_request_dry_run(
                details, params.resolved_environment, params.env_variables
            )

        options = RunOptions(
            environment=params.resolved_environment,
            env_variables=self._sanitized(params.env_variables),
            reporter_json=params.reporter_json,
            reporter_junit=params.reporter_junit,
            reporter_html=params.reporter_html,
        )
        result = self._call(
            "Failed to run request",
            lambda: self.bruno.run_request(params.collection_path, params.request_name, options),
        )
        return self.config_loader.mask_secrets(formatters.format_run_result(result))

    def run_collection(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(RunCollectionParams, arguments)
        self._check(
            "Run collection",
            collection_path=params.collection_path,
            folder_path=params.folder_path,
            env_variables=params.env_variables,
        )

        if params.dry_run:
            return self._collection_dry_run(params)

        options = RunOptions(
            environment=params.resolved_environment,
            env_variables=self._sanitized(params.env_variables),
            folder_path=params.folder_path,
            reporter_json=params.reporter_json,
            reporter_junit=params.reporter_junit,
            reporter_html=params.reporter_html,
        )
        result = self._call(
            "Failed to run collection",
            lambda: self.bruno.run_collection(params.collection_path, options),
        )
        return self.config_loader.mask_secrets(formatters.format_run_result(result))

    def _collection_dry_run(self, params: RunCollectionParams) -> str:
        requests = self._call(
            "Dry run validation failed",
            lambda: self.bruno.list_requests(params.collection_path),
        )
        if params.folder_path:
            requests = [r for r in requests if r.folder and params.folder_path in r.folder]

        lines: List[str] = []
        for record in requests:
            try:
                details = self.bruno.validator.get_request_details(record.file_path, record.name)
            except (OSError, UnicodeDecodeError) as e:
                lines.append(f"✗ {record.name} - Validation error: {e}")
            else:
                lines.append(f"✓ {record.name} - {details.method} {details.url}")

        text = formatters.format_collection_dry_run(
            lines, params.folder_path, params.resolved_environment, params.env_variables
        )
        return self.config_loader.mask_secrets(text)

    def list_requests(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(ListRequestsParams, arguments)
        self._check("List requests", collection_path=params.collection_path)
        requests = self._call(
            "Failed to list requests",
            lambda: self.bruno.list_requests(params.collection_path),
        )
        return formatters.format_request_list(requests)

    def discover_collections(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(DiscoverCollectionsParams, arguments)
        self._check("Discover collections", collection_path=params.search_path)
        collections = self._call(
            "Failed to discover collections",
            lambda: self.bruno.discover_collections(params.search_path, params.max_depth),
        )
        return formatters.format_collection_list(params.search_path, collections)

    def list_environments(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(ListEnvironmentsParams, arguments)
        self._check("List environments", collection_path=params.collection_path)
        environments = self._call(
            "Failed to list environments",
            lambda: self.bruno.list_environments(params.collection_path),
        )
        return formatters.format_environment_list(environments)

    def validate_environment(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(ValidateEnvironmentParams, arguments)
        # Environment names go through the request-name checks
        self._check(
            "Validate environment",
            collection_path=params.collection_path,
            request_name=params.environment_name,
        )
        result = self._call(
            "Failed to validate environment",
            lambda: self.bruno.validate_environment(params.collection_path, params.environment_name),
        )
        return formatters.format_environment_validation(params.environment_name, result)

    def get_request_details(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(GetRequestDetailsParams, arguments)
        self._check(
            "Get request details",
            collection_path=params.collection_path,
            request_name=params.request_name,
        )
        details = self._call(
            "Failed to get request details",
            lambda: self.bruno.get_request_details(params.collection_path, params.request_name),
        )
        return self.config_loader.mask_secrets(formatters.format_request_details(details))

    def validate_collection(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(ValidateCollectionParams, arguments)
        self._check("Validate collection", collection_path=params.collection_path)
        result = self._call(
            "Failed to validate collection",
            lambda: self.bruno.validate_collection(params.collection_path),
        )
        return self.config_loader.mask_secrets(formatters.format_collection_validation(result))

    def health_check(self, arguments: Dict[str, Any]) -> str:
        params = self._parse(HealthCheckParams, arguments)
        version = self.bruno.get_version()
        available = version is not None or self.bruno.is_available()
        return formatters.format_health_check(
            self.config_loader.get_config(),
            cli_available=available,
            cli_version=version,
            metrics_summary=self.performance.get_metrics_summary() if params.include_metrics else None,
            cache_stats=self.performance.get_cache_stats() if params.include_cache_stats else None,
        )
