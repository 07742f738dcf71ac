"""Bruno MCP - tool server for running and inspecting Bruno API collections."""

__version__ = "0.1.0"
