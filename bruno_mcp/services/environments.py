"""Environment listing and validation."""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..models import Environment, EnvironmentValidation
from ..parsers.bru import BruFileParser
from ..performance import PerformanceManager
from .discovery import ENVIRONMENTS_DIR, REQUEST_EXTENSION

logger = logging.getLogger(__name__)

# Variable names containing any of these are checked for hardcoded values
SENSITIVE_KEY_MARKERS = ("password", "secret", "token", "api_key", "apikey")

# Values starting with these are references, not literals
REFERENCE_PREFIXES = ("{{", "$")


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEY_MARKERS)


class EnvironmentResolver:
    """Reads the environment files of a collection."""

    def __init__(
        self,
        parser: Optional[BruFileParser] = None,
        performance: Optional[PerformanceManager] = None,
    ):
        self.parser = parser or BruFileParser()
        self.performance = performance or PerformanceManager()

    def environment_path(self, collection_root: Union[str, Path], name: str) -> Path:
        return Path(collection_root) / ENVIRONMENTS_DIR / f"{name}{REQUEST_EXTENSION}"

    def list_environments(self, collection_root: Union[str, Path]) -> List[Environment]:
        """List the environments of a collection.

        A missing ``environments`` directory yields an empty list. A file
        that cannot be read is listed without variables.
        """
        key = str(collection_root)
        cached = self.performance.get_cached_environment_list(key)
        if cached is not None:
            return cached

        env_dir = Path(collection_root) / ENVIRONMENTS_DIR
        if not env_dir.is_dir():
            return []

        environments: List[Environment] = []
        for env_file in sorted(env_dir.iterdir()):
            if not env_file.is_file() or env_file.suffix != REQUEST_EXTENSION:
                continue
            environment = Environment(name=env_file.stem, path=str(env_file))
            try:
                content = env_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read environment file %s: %s", env_file, e)
            else:
                environment.variables = self.parser.parse_environment_variables(content)
            environments.append(environment)

        self.performance.cache_environment_list(key, environments)
        return environments

    def validate_environment(self, collection_root: Union[str, Path], name: str) -> EnvironmentValidation:
        """Check one environment file.

        Missing files stop validation with a single error. Every other
        check adds a warning and all of them run.

        Args:
            collection_root: Collection directory
            name: Environment name without extension

        Returns:
            EnvironmentValidation report
        """
        env_path = self.environment_path(collection_root, name)
        if not env_path.is_file():
            return EnvironmentValidation(
                valid=False,
                exists=False,
                errors=[f"Environment file not found: {env_path}"],
            )

        result = EnvironmentValidation(valid=True, exists=True)
        try:
            content = env_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            result.valid = False
            result.errors.append(f"Failed to read environment file: {e}")
            return result

        if "vars {" not in content:
            result.warnings.append('Environment file does not contain a "vars {}" block')

        result.variables = self.parser.parse_environment_variables(content)
        if not result.variables:
            result.warnings.append("No variables defined in environment")

        for key, value in result.variables.items():
            if is_sensitive_key(key) and value and not value.startswith(REFERENCE_PREFIXES):
                result.warnings.append(f'Variable "{key}" may contain hardcoded sensitive data')

        return result
