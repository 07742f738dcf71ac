"""
Path-keyed TTL caches and per-tool execution metrics.

State is in-process and unlocked: the server handles one call at a time.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from .config.schema import PerformanceConfig
from .models import Environment, RequestRecord

CACHE_TYPES = ("request_list", "collection_discovery", "environments", "file_content")

_CACHE_LABELS = {
    "request_list": "Request List Cache",
    "collection_discovery": "Collection Discovery Cache",
    "environments": "Environment Cache",
    "file_content": "File Content Cache",
}


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


@dataclass
class ToolMetric:
    """One tool execution."""
    tool: str
    duration_ms: float
    success: bool
    timestamp: float = field(default_factory=time.time)


class TTLCache:
    """Dict cache whose entries stop being returned after ``ttl_ms``.

    Expired entries are not evicted; they are replaced on the next store.
    """

    def __init__(self, ttl_ms: int):
        self.ttl_ms = ttl_ms
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if (time.monotonic() - entry.stored_at) * 1000 >= self.ttl_ms:
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=time.monotonic())

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class PerformanceManager:
    """Owns the caches and metrics shared by the services."""

    def __init__(self, config: Optional[PerformanceConfig] = None):
        self.config = config or PerformanceConfig()
        self._caches: Dict[str, TTLCache] = {
            name: TTLCache(self.config.cache_ttl) for name in CACHE_TYPES
        }
        self._metrics: Deque[ToolMetric] = deque(maxlen=self.config.max_metrics)

    @property
    def enabled(self) -> bool:
        return self.config.cache_enabled

    def _get(self, cache_type: str, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        return self._caches[cache_type].get(key)

    def _set(self, cache_type: str, key: str, value: Any) -> None:
        if self.enabled:
            self._caches[cache_type].set(key, value)

    def cache_request_list(self, collection_path: str, requests: List[RequestRecord]) -> None:
        self._set("request_list", collection_path, list(requests))

    def get_cached_request_list(self, collection_path: str) -> Optional[List[RequestRecord]]:
        cached = self._get("request_list", collection_path)
        return list(cached) if cached is not None else None

    def cache_collection_discovery(self, search_path: str, collections: List[str]) -> None:
        self._set("collection_discovery", search_path, list(collections))

    def get_cached_collection_discovery(self, search_path: str) -> Optional[List[str]]:
        cached = self._get("collection_discovery", search_path)
        return list(cached) if cached is not None else None

    def cache_environment_list(self, collection_path: str, environments: List[Environment]) -> None:
        self._set("environments", collection_path, list(environments))

    def get_cached_environment_list(self, collection_path: str) -> Optional[List[Environment]]:
        cached = self._get("environments", collection_path)
        return list(cached) if cached is not None else None

    def cache_file_content(self, file_path: str, content: str) -> None:
        self._set("file_content", file_path, content)

    def get_cached_file_content(self, file_path: str) -> Optional[str]:
        return self._get("file_content", file_path)

    def read_file(self, file_path: str) -> str:
        """Return a file's text, from the file content cache when fresh.

        Raises:
            OSError, UnicodeDecodeError: The file could not be read
        """
        cached = self.get_cached_file_content(file_path)
        if cached is not None:
            return cached
        content = Path(file_path).read_text(encoding="utf-8")
        self.cache_file_content(file_path, content)
        return content

    def clear_cache(self, cache_type: Optional[str] = None) -> None:
        """Clear one cache by name, or all of them."""
        if cache_type is None:
            for cache in self._caches.values():
                cache.clear()
            return
        if cache_type not in self._caches:
            raise ValueError(f"Unknown cache type: {cache_type}")
        self._caches[cache_type].clear()

    def get_cache_stats(self) -> Dict[str, Dict[str, Any]]:
        """Entry count and keys per cache."""
        return {
            name: {"size": len(cache), "keys": cache.keys()}
            for name, cache in self._caches.items()
        }

    def record_metric(self, metric: ToolMetric) -> None:
        """Keep a metric; the oldest is dropped once ``max_metrics`` are held."""
        self._metrics.append(metric)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Aggregate the recorded metrics.

        Returns:
            Dict with total_executions, success_rate (percent),
            average_duration (ms) and by_tool {count, avg_duration,
            success_rate}
        """
        total = len(self._metrics)
        if total == 0:
            return {
                "total_executions": 0,
                "success_rate": 0.0,
                "average_duration": 0.0,
                "by_tool": {},
            }

        by_tool: Dict[str, Dict[str, Any]] = {}
        grouped: Dict[str, List[ToolMetric]] = {}
        for metric in self._metrics:
            grouped.setdefault(metric.tool, []).append(metric)

        for tool, metrics in grouped.items():
            successes = sum(1 for m in metrics if m.success)
            by_tool[tool] = {
                "count": len(metrics),
                "avg_duration": sum(m.duration_ms for m in metrics) / len(metrics),
                "success_rate": successes / len(metrics) * 100,
            }

        successes = sum(1 for m in self._metrics if m.success)
        return {
            "total_executions": total,
            "success_rate": successes / total * 100,
            "average_duration": sum(m.duration_ms for m in self._metrics) / total,
            "by_tool": by_tool,
        }

    def clear_metrics(self) -> None:
        self._metrics.clear()


def format_metrics(summary: Dict[str, Any]) -> str:
    """Render a metrics summary as text."""
    lines = [
        "=== Performance Metrics ===",
        "",
        f"Total Executions: {summary['total_executions']}",
        f"Success Rate: {summary['success_rate']:.2f}%",
        f"Average Duration: {summary['average_duration']:.2f}ms",
    ]

    if summary["by_tool"]:
        lines.append("")
        lines.append("By Tool:")
        for tool, stats in sorted(summary["by_tool"].items()):
            lines.append(f"  {tool}:")
            lines.append(f"    Executions: {stats['count']}")
            lines.append(f"    Avg Duration: {stats['avg_duration']:.2f}ms")
            lines.append(f"    Success Rate: {stats['success_rate']:.2f}%")

    return "\n".join(lines)


def format_cache_stats(stats: Dict[str, Dict[str, Any]]) -> str:
    """Render cache statistics as text."""
    lines = ["=== Cache Statistics ===", ""]
    for cache_type in CACHE_TYPES:
        cache_stats = stats.get(cache_type, {"size": 0, "keys": []})
        lines.append(f"{_CACHE_LABELS[cache_type]}: {cache_stats['size']} entries")
        for key in cache_stats["keys"][:5]:
            lines.append(f"  - {key}")
        if cache_stats["size"] > 5:
            lines.append(f"  ... and {cache_stats['size'] - 5} more")
    return "\n".join(lines)
