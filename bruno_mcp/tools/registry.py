"""
Tool Registry.

This module provides:
- ToolStatus enum for tool availability
- ToolDefinition, one registered tool with its parameter schema
- ToolRegistry for registering tools and listing them to RPC clients
"""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


class ToolStatus(Enum):
    """Status of a registered tool."""
    WORKING = "working"      # Listed and callable
    DISABLED = "disabled"    # Registered but hidden from clients


@dataclass
class ToolDefinition:
    """Definition of a registered tool."""
    name: str
    function: Callable[[Dict[str, Any]], str]
    description: str
    parameters: Dict[str, Any]
    status: ToolStatus = ToolStatus.WORKING
    category: str = "general"

    def is_available(self) -> bool:
        """Check if tool is available for use."""
        return self.status == ToolStatus.WORKING

    def to_mcp_schema(self) -> Dict[str, Any]:
        """Convert to the schema returned by ``tools/list``."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }


class ToolRegistry:
    """Registry for the tools exposed over RPC."""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}
        self._categories: Dict[str, List[str]] = {}

    def register(
        self,
        name: str,
        function: Callable[[Dict[str, Any]], str],
        description: str,
        parameters: Dict[str, Any],
        status: ToolStatus = ToolStatus.WORKING,
        category: str = "general",
    ) -> None:
        """Register a tool with the registry.

        Args:
            name: Unique tool name
            function: Handler taking the raw argument dict, returning text
            description: Tool description for clients
            parameters: JSON schema of the arguments
            status: Current availability
            category: Tool category for grouping

        Raises:
            ValueError: A tool with this name is already registered
        """
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")

        self._tools[name] = ToolDefinition(
            name=name,
            function=function,
            description=description,
            parameters=parameters,
            status=status,
            category=category,
        )

        # Track by category
        self._categories.setdefault(category, []).append(name)

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_handler(self, name: str) -> Optional[Callable[[Dict[str, Any]], str]]:
        """Get the handler function for an available tool."""
        tool = self._tools.get(name)
        if tool and tool.is_available():
            return tool.function
        return None

    def list_names(self) -> List[str]:
        """List available tool names in registration order."""
        return [name for name, tool in self._tools.items() if tool.is_available()]

    def list_by_category(self, category: str) -> List[str]:
        """List tools in a category."""
        return list(self._categories.get(category, []))

    def get_categories(self) -> List[str]:
        """Get all category names."""
        return list(self._categories.keys())

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        """Schemas of the available tools for ``tools/list``."""
        return [tool.to_mcp_schema() for tool in self._tools.values() if tool.is_available()]

    def __len__(self) -> int:
        return len(self._tools)
