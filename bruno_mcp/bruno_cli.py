"""
Bruno CLI facade.

Resolves the runner command and wires the services together. Every
operation the tool handlers need is available here.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from .config.loader import ConfigLoader
from .errors import RequestNotFoundError
from .models import (
    CollectionValidationResult,
    Environment,
    EnvironmentValidation,
    RequestDetails,
    RequestRecord,
    RunOptions,
    RunResult,
)
from .parsers.bru import BruFileParser
from .performance import PerformanceManager
from .services.discovery import DEFAULT_MAX_DEPTH, CollectionDiscoverer
from .services.environments import EnvironmentResolver
from .services.execution import RequestExecutor
from .services.validation import CollectionValidator

logger = logging.getLogger(__name__)

DEFAULT_RUNNER = "bru"
LOCAL_RUNNER_SCRIPT = Path("node_modules") / "@usebruno" / "cli" / "bin" / "bru.js"
VERSION_TIMEOUT_SECONDS = 5


def resolve_runner(explicit_path: Optional[str] = None, search_dir: Optional[Path] = None) -> str:
    """Find the Bruno CLI.

    Resolution order:
    1. Explicit path (argument or configuration)
    2. ``bru`` on PATH
    3. ``node_modules/@usebruno/cli/bin/bru.js`` under ``search_dir``
    4. The bare ``bru`` command
    """
    if explicit_path:
        return explicit_path

    on_path = shutil.which(DEFAULT_RUNNER)
    if on_path:
        return on_path

    local_script = (search_dir or Path.cwd()) / LOCAL_RUNNER_SCRIPT
    if local_script.is_file():
        return str(local_script)

    return DEFAULT_RUNNER


def runner_command(runner: str) -> List[str]:
    """Command prefix for a runner; ``.js`` scripts run through node."""
    if runner.endswith(".js"):
        return ["node", runner]
    return [runner]


class BrunoCLI:
    """Entry point to the Bruno services."""

    def __init__(
        self,
        config_loader: Optional[ConfigLoader] = None,
        performance: Optional[PerformanceManager] = None,
        bruno_path: Optional[str] = None,
    ):
        """Initialize the facade.

        Args:
            config_loader: Loaded configuration; defaults are used when None
            performance: Cache and metrics store shared with the tool layer
            bruno_path: Runner path, overriding the configuration
        """
        self.config_loader = config_loader or ConfigLoader()
        config = self.config_loader.get_config()
        self.performance = performance or PerformanceManager(config.performance)

        self.runner = resolve_runner(bruno_path or config.bruno_cli_path)
        self.command = runner_command(self.runner)
        logger.debug("Using Bruno CLI: %s", " ".join(self.command))

        self.parser = BruFileParser()
        self.discoverer = CollectionDiscoverer(parser=self.parser, performance=self.performance)
        self.environments = EnvironmentResolver(parser=self.parser, performance=self.performance)
        self.executor = RequestExecutor(
            self.command,
            discoverer=self.discoverer,
            timeouts=config.timeout,
        )
        self.validator = CollectionValidator(
            discoverer=self.discoverer,
            environments=self.environments,
            parser=self.parser,
        )

    def is_available(self) -> bool:
        """True when ``<runner> --version`` can be started."""
        return self._version_process() is not None

    def get_version(self) -> Optional[str]:
        proc = self._version_process()
        if proc is None:
            return None
        return proc.stdout.strip() or None

    def _version_process(self) -> Optional[subprocess.CompletedProcess]:
        try:
            return subprocess.run(
                self.command + ["--version"],
                capture_output=True,
                text=True,
                timeout=VERSION_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Bruno CLI not available: %s", e)
            return None

    def run_request(
        self,
        collection_root: Union[str, Path],
        request_name: str,
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        return self.executor.run_request(collection_root, request_name, options)

    def run_collection(
        self,
        collection_root: Union[str, Path],
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        return self.executor.run_collection(collection_root, options)

    def list_requests(self, collection_root: Union[str, Path]) -> List[RequestRecord]:
        return self.discoverer.list_requests(collection_root)

    def discover_collections(
        self,
        search_root: Union[str, Path],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> List[str]:
        return self.discoverer.discover_collections(search_root, max_depth)

    def find_request_file(self, collection_root: Union[str, Path], request_name: str) -> Optional[str]:
        return self.discoverer.find_request_file(collection_root, request_name)

    def list_environments(self, collection_root: Union[str, Path]) -> List[Environment]:
        return self.environments.list_environments(collection_root)

    def validate_environment(self, collection_root: Union[str, Path], name: str) -> EnvironmentValidation:
        return self.environments.validate_environment(collection_root, name)

    def get_request_details(self, collection_root: Union[str, Path], request_name: str) -> RequestDetails:
        """Parse the request matching ``request_name``.

        Raises:
            NotFoundError: The collection path does not exist
            RequestNotFoundError: No request file matches
            OSError: The file could not be read
        """
        request_file = self.find_request_file(collection_root, request_name)
        if request_file is None:
            raise RequestNotFoundError(request_name)
        return self.validator.get_request_details(request_file, request_name)

    def validate_collection(self, collection_root: Union[str, Path]) -> CollectionValidationResult:
        return self.validator.validate_collection(collection_root)
