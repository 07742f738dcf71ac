"""Bruno MCP configuration schema definitions."""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Section(BaseModel):
    """Accept both snake_case names and the camelCase keys of JSON configs."""

    model_config = ConfigDict(populate_by_name=True)


class TimeoutConfig(_Section):
    """Runner timeouts in milliseconds."""

    request: int = Field(30000, gt=0, description="Timeout for a single request run")
    collection: int = Field(120000, gt=0, description="Timeout for a collection or folder run")


class RetryConfig(_Section):
    """Retry settings. Reported by the health check, not applied to runs."""

    enabled: bool = Field(False, description="Whether failed runs are retried")
    max_attempts: int = Field(3, ge=1, alias="maxAttempts", description="Maximum attempts per run")
    backoff_ms: int = Field(1000, ge=0, alias="backoffMs", description="Delay between attempts")


class SecurityConfig(_Section):
    """Path allow-list and secret masking."""

    allowed_paths: List[str] = Field(
        default_factory=list,
        alias="allowedPaths",
        description="Directories collections must live in (empty allows any path)",
    )
    mask_secrets: bool = Field(True, alias="maskSecrets", description="Redact secrets in output")
    secret_patterns: List[str] = Field(
        default_factory=list,
        alias="secretPatterns",
        description="Extra regular expressions whose matches are redacted",
    )

    @field_validator("secret_patterns")
    @classmethod
    def check_secret_patterns(cls, value: List[str]) -> List[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid secret pattern {pattern!r}: {e}") from e
        return value


class LoggingConfig(_Section):
    """Log level, format and destination."""

    level: str = Field("info", pattern=r"^(debug|info|warning|error)$", description="Log level")
    format: str = Field("text", pattern=r"^(text|json)$", description="Log line format")
    log_file: Optional[str] = Field(None, alias="logFile", description="Optional log file path")


class PerformanceConfig(_Section):
    """Cache settings."""

    cache_enabled: bool = Field(True, alias="cacheEnabled", description="Enable path-keyed caches")
    cache_ttl: int = Field(300000, ge=0, alias="cacheTTL", description="Cache entry lifetime in ms")
    max_concurrency: int = Field(10, ge=1, alias="maxConcurrency", description="Informational only")
    max_metrics: int = Field(1000, ge=1, alias="maxMetrics", description="Tool executions kept for metrics")


class BrunoMCPConfig(_Section):
    """Root Bruno MCP configuration schema."""

    bruno_cli_path: Optional[str] = Field(
        None,
        alias="brunoCliPath",
        description="Explicit path to the bru runner",
    )
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "brunoCliPath": "/usr/local/bin/bru",
                "timeout": {"request": 30000, "collection": 120000},
                "security": {"allowedPaths": ["/home/me/collections"], "maskSecrets": True},
                "logging": {"level": "info", "format": "text"},
                "performance": {"cacheEnabled": True, "cacheTTL": 300000},
            }
        },
    )
