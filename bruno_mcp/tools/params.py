"""Argument models for the Bruno tools.

Clients send camelCase keys; snake_case names are accepted too.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolParams(BaseModel):
    """Base for tool argument models."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")

    @classmethod
    def input_schema(cls) -> Dict[str, Any]:
        """JSON schema advertised in ``tools/list``."""
        schema = cls.model_json_schema(by_alias=True)
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema


class CollectionParams(ToolParams):
    collection_path: str = Field(description="Path to the Bruno collection")


class RunParams(CollectionParams):
    """Options shared by the two run tools."""

    environment: Optional[str] = Field(None, description="Name or path of the environment to use")
    enviroment: Optional[str] = Field(None, description="Alias for environment (common typo)")
    env_variables: Optional[Dict[str, str]] = Field(
        None, description="Environment variables as key-value pairs"
    )
    reporter_json: Optional[str] = Field(None, description="Path to write JSON report")
    reporter_junit: Optional[str] = Field(None, description="Path to write JUnit XML report")
    reporter_html: Optional[str] = Field(None, description="Path to write HTML report")
    dry_run: bool = Field(False, description="Validate without executing HTTP calls")

    @property
    def resolved_environment(self) -> Optional[str]:
        return self.environment or self.enviroment


class RunRequestParams(RunParams):
    request_name: str = Field(description="Name of the request to run")


class RunCollectionParams(RunParams):
    folder_path: Optional[str] = Field(None, description="Specific folder within collection to run")


class ListRequestsParams(CollectionParams):
    pass


class DiscoverCollectionsParams(ToolParams):
    search_path: str = Field(description="Directory path to search for Bruno collections")
    max_depth: int = Field(5, ge=0, description="Maximum directory depth to search (capped at 10)")


class ListEnvironmentsParams(CollectionParams):
    pass


class ValidateEnvironmentParams(CollectionParams):
    environment_name: str = Field(description="Name of the environment to validate")


class GetRequestDetailsParams(CollectionParams):
    request_name: str = Field(description="Name of the request to inspect")


class ValidateCollectionParams(CollectionParams):
    pass


class HealthCheckParams(ToolParams):
    include_metrics: bool = Field(False, description="Include performance metrics in output")
    include_cache_stats: bool = Field(False, description="Include cache statistics in output")
