"""Configuration loading.

Config files are optional. The first one found wins:

    1. the path passed to ``load()``
    2. ``$BRUNO_MCP_CONFIG``
    3. ``./bruno-mcp.config.json``, ``./bruno-mcp.config.yaml``,
       ``./bruno-mcp.config.yml``
    4. ``~/.bruno-mcp/config.json``

Environment variables override whatever the file says.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from ..security import mask_secrets
from .schema import (
    BrunoMCPConfig,
    LoggingConfig,
    PerformanceConfig,
    RetryConfig,
    SecurityConfig,
    TimeoutConfig,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BRUNO_MCP_CONFIG"

LOCAL_CONFIG_FILES = (
    "bruno-mcp.config.json",
    "bruno-mcp.config.yaml",
    "bruno-mcp.config.yml",
)


class ConfigLoader:
    """Loads and holds the active BrunoMCPConfig."""

    def __init__(self, config: Optional[BrunoMCPConfig] = None):
        self._config = config or BrunoMCPConfig()
        self.source: Optional[Path] = None

    def load(self, path: Optional[Union[str, Path]] = None) -> BrunoMCPConfig:
        """Load configuration from disk and the environment.

        Args:
            path: Explicit config file; must exist when given

        Returns:
            The loaded configuration, also kept on the loader

        Raises:
            ConfigError: File unreadable, malformed or not matching the schema
        """
        config_path = self._find_config_file(path)
        data: Dict[str, Any] = {}
        if config_path is not None:
            data = self._read_file(config_path)
            self.source = config_path
            logger.debug("Loaded configuration from %s", config_path)

        self._apply_env_overrides(data)

        try:
            self._config = BrunoMCPConfig.model_validate(data)
        except ValidationError as e:
            where = config_path or "environment"
            raise ConfigError(f"Invalid configuration in {where}: {e}") from e

        return self._config

    def _find_config_file(self, path: Optional[Union[str, Path]]) -> Optional[Path]:
        if path:
            explicit = Path(path).expanduser()
            if not explicit.is_file():
                raise ConfigError(f"Config file not found: {explicit}")
            return explicit

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            candidate = Path(env_path).expanduser()
            if not candidate.is_file():
                raise ConfigError(f"Config file from {CONFIG_ENV_VAR} not found: {candidate}")
            return candidate

        candidates: List[Path] = [Path.cwd() / name for name in LOCAL_CONFIG_FILES]
        candidates.append(Path.home() / ".bruno-mcp" / "config.json")
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def _read_file(self, path: Path) -> Dict[str, Any]:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot parse config file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        cli_path = os.environ.get("BRUNO_CLI_PATH")
        if cli_path:
            data.pop("brunoCliPath", None)
            data["bruno_cli_path"] = cli_path

        log_level = os.environ.get("BRUNO_MCP_LOG_LEVEL")
        if log_level:
            section = dict(data.get("logging") or {})
            section["level"] = log_level.lower()
            data["logging"] = section

        allowed = os.environ.get("BRUNO_MCP_ALLOWED_PATHS")
        if allowed:
            section = dict(data.get("security") or {})
            section.pop("allowedPaths", None)
            section["allowed_paths"] = [p for p in allowed.split(os.pathsep) if p]
            data["security"] = section

    def get_config(self) -> BrunoMCPConfig:
        return self._config

    def get_timeout(self) -> TimeoutConfig:
        return self._config.timeout

    def get_retry(self) -> RetryConfig:
        return self._config.retry

    def get_security(self) -> SecurityConfig:
        return self._config.security

    def get_logging(self) -> LoggingConfig:
        return self._config.logging

    def get_performance(self) -> PerformanceConfig:
        return self._config.performance

    def mask_secrets(self, text: str) -> str:
        """Redact secrets from text according to the security settings."""
        return mask_secrets(text, self._config.security)
