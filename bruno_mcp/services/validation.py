"""
Structural validation of a whole collection.

Problems are collected into the report instead of being raised. Only a
missing root or manifest stops validation early.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from ..errors import BrunoError
from ..models import CollectionValidationResult, RequestDetails
from ..parsers.bru import BruFileParser
from .discovery import MANIFEST_FILE, CollectionDiscoverer
from .environments import EnvironmentResolver

logger = logging.getLogger(__name__)

EXPECTED_COLLECTION_TYPE = "collection"


class CollectionValidator:
    """Checks the manifest, request files and environments of a collection."""

    def __init__(
        self,
        discoverer: Optional[CollectionDiscoverer] = None,
        environments: Optional[EnvironmentResolver] = None,
        parser: Optional[BruFileParser] = None,
    ):
        self.parser = parser or BruFileParser()
        self.discoverer = discoverer or CollectionDiscoverer(parser=self.parser)
        self.environments = environments or EnvironmentResolver(parser=self.parser)

    def get_request_details(self, file_path: Union[str, Path], request_name: str) -> RequestDetails:
        """Parse a request file through the shared file content cache. Read errors propagate."""
        content = self.discoverer.performance.read_file(str(file_path))
        return self.parser.parse_request(content, name=request_name or Path(file_path).stem)

    def validate_collection(self, collection_root: Union[str, Path]) -> CollectionValidationResult:
        """Validate a collection.

        Args:
            collection_root: Collection directory

        Returns:
            CollectionValidationResult; ``valid`` is False when any error
            was recorded
        """
        root = Path(collection_root)
        result = CollectionValidationResult(valid=True)

        if not root.is_dir():
            result.valid = False
            result.errors.append(f"Collection directory not found: {collection_root}")
            return result

        manifest = root / MANIFEST_FILE
        if not manifest.is_file():
            result.valid = False
            result.errors.append(f"{MANIFEST_FILE} not found in collection root")
            return result

        result.summary.has_manifest = True
        self._check_manifest(manifest, result)
        self._check_requests(root, result)
        self._check_environments(root, result)

        result.valid = not result.errors
        return result

    def _check_manifest(self, manifest: Path, result: CollectionValidationResult) -> None:
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            result.errors.append(f"Invalid JSON in {MANIFEST_FILE}: {e}")
            return

        if not isinstance(data, dict):
            result.errors.append(f"Invalid {MANIFEST_FILE}: expected a JSON object")
            return

        if not data.get("version"):
            result.warnings.append(f'{MANIFEST_FILE} missing "version" field')
        if not data.get("name"):
            result.warnings.append(f'{MANIFEST_FILE} missing "name" field')

        collection_type = data.get("type")
        if not collection_type:
            result.errors.append(f'{MANIFEST_FILE} missing "type" field')
        elif collection_type != EXPECTED_COLLECTION_TYPE:
            result.errors.append(
                f'Invalid type in {MANIFEST_FILE}: expected "{EXPECTED_COLLECTION_TYPE}", '
                f'got "{collection_type}"'
            )

    def _check_requests(self, root: Path, result: CollectionValidationResult) -> None:
        try:
            requests = self.discoverer.list_requests(root)
        except (BrunoError, OSError) as e:
            result.errors.append(f"Failed to list requests: {e}")
            return

        result.summary.total_requests = len(requests)
        if not requests:
            result.warnings.append("Collection contains no requests")

        for record in requests:
            try:
                self.get_request_details(record.file_path, record.name)
            except (OSError, UnicodeDecodeError) as e:
                result.summary.invalid_requests += 1
                result.errors.append(f'Invalid request "{record.name}": {e}')
            else:
                result.summary.valid_requests += 1

    def _check_environments(self, root: Path, result: CollectionValidationResult) -> None:
        try:
            environments = self.environments.list_environments(root)
            result.summary.environments = len(environments)
            if not environments:
                result.warnings.append("No environments found in collection")

            for environment in environments:
                validation = self.environments.validate_environment(root, environment.name)
                if not validation.valid:
                    result.warnings.append(
                        f'Environment "{environment.name}" has issues: {", ".join(validation.errors)}'
                    )
                for warning in validation.warnings:
                    result.warnings.append(f'Environment "{environment.name}": {warning}')
        except (BrunoError, OSError) as e:
            logger.warning("Could not validate environments of %s: %s", root, e)
            result.warnings.append("Could not validate environments")
