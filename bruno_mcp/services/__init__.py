"""Services - discovery, environments, execution and validation."""

from .discovery import CollectionDiscoverer, is_collection_root
from .environments import EnvironmentResolver
from .execution import RequestExecutor, normalize_environment_name
from .validation import CollectionValidator

__all__ = [
    "CollectionDiscoverer",
    "CollectionValidator",
    "EnvironmentResolver",
    "RequestExecutor",
    "is_collection_root",
    "normalize_environment_name",
]
