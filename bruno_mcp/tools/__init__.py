"""
Tool Registry initialization.

This module builds the registry of Bruno tools exposed over RPC.

Usage:
    from bruno_mcp.tools import build_registry

    registry = build_registry(handlers)
    handler = registry.get_handler("bruno_list_requests")
    text = handler({"collectionPath": "./api-tests"})
"""

from .registry import ToolDefinition, ToolRegistry, ToolStatus
from .handlers import BrunoToolHandlers
from .params import (
    DiscoverCollectionsParams,
    GetRequestDetailsParams,
    HealthCheckParams,
    ListEnvironmentsParams,
    ListRequestsParams,
    RunCollectionParams,
    RunRequestParams,
    ValidateCollectionParams,
    ValidateEnvironmentParams,
)


def build_registry(handlers: BrunoToolHandlers) -> ToolRegistry:
    """Register every Bruno tool against one set of handlers."""
    registry = ToolRegistry()

    # ==========================================================================
    # EXECUTION
    # ==========================================================================

    registry.register(
        name="bruno_run_request",
        function=handlers.run_request,
        description="Run a specific request from a Bruno collection",
        parameters=RunRequestParams.input_schema(),
        category="execution",
    )

    registry.register(
        name="bruno_run_collection",
        function=handlers.run_collection,
        description="Run all requests in a Bruno collection or specific folder",
        parameters=RunCollectionParams.input_schema(),
        category="execution",
    )

    # ==========================================================================
    # DISCOVERY
    # ==========================================================================

    registry.register(
        name="bruno_list_requests",
        function=handlers.list_requests,
        description="List all requests in a Bruno collection",
        parameters=ListRequestsParams.input_schema(),
        category="discovery",
    )

    registry.register(
        name="bruno_discover_collections",
        function=handlers.discover_collections,
        description="Discover Bruno collections in a directory tree",
        parameters=DiscoverCollectionsParams.input_schema(),
        category="discovery",
    )

    registry.register(
        name="bruno_list_environments",
        function=handlers.list_environments,
        description="List all environments in a Bruno collection",
        parameters=ListEnvironmentsParams.input_schema(),
        category="discovery",
    )

    registry.register(
        name="bruno_get_request_details",
        function=handlers.get_request_details,
        description="Get detailed information about a specific request without executing it",
        parameters=GetRequestDetailsParams.input_schema(),
        category="discovery",
    )

    # ==========================================================================
    # VALIDATION
    # ==========================================================================

    registry.register(
        name="bruno_validate_environment",
        function=handlers.validate_environment,
        description="Validate an environment file in a Bruno collection",
        parameters=ValidateEnvironmentParams.input_schema(),
        category="validation",
    )

    registry.register(
        name="bruno_validate_collection",
        function=handlers.validate_collection,
        description="Validate a Bruno collection's structure and configuration",
        parameters=ValidateCollectionParams.input_schema(),
        category="validation",
    )

    # ==========================================================================
    # DIAGNOSTICS
    # ==========================================================================

    registry.register(
        name="bruno_health_check",
        function=handlers.health_check,
        description="Check the health status of the Bruno MCP server and Bruno CLI",
        parameters=HealthCheckParams.input_schema(),
        category="diagnostics",
    )

    return registry


__all__ = [
    "BrunoToolHandlers",
    "ToolDefinition",
    "ToolRegistry",
    "ToolStatus",
    "build_registry",
]
