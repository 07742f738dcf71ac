"""
Collection and request discovery.

A collection root is a directory holding ``bruno.json`` (or the legacy
``collection.bru``). Request files are every other ``.bru`` file below it,
outside ``environments/``.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from ..errors import NotACollectionError, NotFoundError
from ..models import RequestRecord
from ..parsers.bru import BruFileParser
from ..performance import PerformanceManager

logger = logging.getLogger(__name__)

MANIFEST_FILE = "bruno.json"
LEGACY_MARKER_FILE = "collection.bru"
REQUEST_EXTENSION = ".bru"
ENVIRONMENTS_DIR = "environments"
IGNORED_DIRS = {"node_modules"}

DEFAULT_MAX_DEPTH = 5
MAX_DEPTH_CEILING = 10


def is_collection_root(path: Union[str, Path]) -> bool:
    """True when the directory holds a manifest or legacy marker file."""
    path = Path(path)
    return (path / MANIFEST_FILE).is_file() or (path / LEGACY_MARKER_FILE).is_file()


def _sorted_entries(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


class CollectionDiscoverer:
    """Finds collection roots and the request files inside them."""

    def __init__(
        self,
        parser: Optional[BruFileParser] = None,
        performance: Optional[PerformanceManager] = None,
    ):
        self.parser = parser or BruFileParser()
        self.performance = performance or PerformanceManager()

    def list_requests(self, collection_root: Union[str, Path]) -> List[RequestRecord]:
        """Index every request file in a collection.

        Args:
            collection_root: Path to the collection directory

        Returns:
            One RequestRecord per request file, in name-sorted walk order

        Raises:
            NotFoundError: Path missing or not a directory
            NotACollectionError: No bruno.json or collection.bru at the root
        """
        key = str(collection_root)
        cached = self.performance.get_cached_request_list(key)
        if cached is not None:
            logger.debug("Using cached request list for %s", key)
            return cached

        root = Path(collection_root)
        if not root.exists():
            raise NotFoundError(f"Collection not found: {collection_root}")
        if not root.is_dir():
            raise NotFoundError(f"Collection path is not a directory: {collection_root}")
        if not is_collection_root(root):
            raise NotACollectionError(f"Not a valid Bruno collection: {collection_root}")

        requests = self._walk_requests(root)
        self.performance.cache_request_list(key, requests)
        return requests

    def discover_collections(
        self,
        search_root: Union[str, Path],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> List[str]:
        """Find collection roots below a directory.

        Collections do not nest: once a directory holds bruno.json its
        subtree is not searched. Unreadable directories are skipped.

        Args:
            search_root: Directory to start from (depth 0)
            max_depth: Deepest level searched, capped at 10

        Returns:
            Paths of the collection roots found
        """
        key = str(search_root)
        cached = self.performance.get_cached_collection_discovery(key)
        if cached is not None:
            return cached

        depth_limit = min(max_depth, MAX_DEPTH_CEILING)
        collections: List[str] = []
        self._search_collections(Path(search_root), 0, depth_limit, collections)

        self.performance.cache_collection_discovery(key, collections)
        return collections

    def _search_collections(
        self,
        directory: Path,
        depth: int,
        depth_limit: int,
        collections: List[str],
    ) -> None:
        if depth > depth_limit:
            return

        try:
            entries = _sorted_entries(directory)
        except OSError as e:
            logger.debug("Cannot read directory %s: %s", directory, e)
            return

        if any(entry.name == MANIFEST_FILE and entry.is_file() for entry in entries):
            collections.append(str(directory))
            return

        for entry in entries:
            if not entry.is_dir() or entry.name.startswith(".") or entry.name in IGNORED_DIRS:
                continue
            self._search_collections(Path(entry.path), depth + 1, depth_limit, collections)

    def find_request_file(self, collection_root: Union[str, Path], request_name: str) -> Optional[str]:
        """Resolve a request name to its file.

        Tries an exact name match, then a case-insensitive match, then the
        first name containing ``request_name``. Always walks the disk.

        Returns:
            File path of the match, or None

        Raises:
            NotFoundError: Path missing or not a directory
        """
        root = Path(collection_root)
        if not root.is_dir():
            raise NotFoundError(f"Collection not found: {collection_root}")
        requests = self._walk_requests(root)

        match = next((r for r in requests if r.name == request_name), None)
        if match is None:
            folded = request_name.casefold()
            match = next((r for r in requests if r.name.casefold() == folded), None)
        if match is None:
            match = next((r for r in requests if request_name in r.name), None)

        return match.file_path if match else None

    def _walk_requests(self, root: Path) -> List[RequestRecord]:
        requests: List[RequestRecord] = []
        self._collect_requests(root, root, requests)
        return requests

    def _collect_requests(self, directory: Path, root: Path, requests: List[RequestRecord]) -> None:
        for entry in _sorted_entries(directory):
            if entry.is_dir():
                if entry.name.startswith(".") or entry.name in IGNORED_DIRS or entry.name == ENVIRONMENTS_DIR:
                    continue
                self._collect_requests(Path(entry.path), root, requests)
            elif entry.is_file() and entry.name.endswith(REQUEST_EXTENSION):
                if entry.name == LEGACY_MARKER_FILE:
                    continue
                requests.append(self._record_for(Path(entry.path), directory, root))

    def _record_for(self, file_path: Path, directory: Path, root: Path) -> RequestRecord:
        folder = directory.relative_to(root).as_posix()
        record = RequestRecord(
            name=file_path.name[:-len(REQUEST_EXTENSION)],
            file_path=str(file_path),
            folder=None if folder == "." else folder,
        )

        try:
            info = self.parser.parse_basic_info(self.performance.read_file(str(file_path)))
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read request file %s: %s", file_path, e)
            return record

        record.name = info.get("name", record.name)
        record.method = info.get("method")
        record.url = info.get("url")
        return record
