"""Config module - Bruno MCP configuration schema and loading."""

from .schema import (
    BrunoMCPConfig,
    LoggingConfig,
    PerformanceConfig,
    RetryConfig,
    SecurityConfig,
    TimeoutConfig,
)
from .loader import ConfigLoader

__all__ = [
    "BrunoMCPConfig",
    "ConfigLoader",
    "LoggingConfig",
    "PerformanceConfig",
    "RetryConfig",
    "SecurityConfig",
    "TimeoutConfig",
]
