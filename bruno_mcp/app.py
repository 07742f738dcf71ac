"""Composition root: builds every component from one configuration."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .bruno_cli import BrunoCLI
from .config.loader import ConfigLoader
from .logger import setup_logging
from .performance import PerformanceManager
from .server import MCPServer
from .tools import BrunoToolHandlers, ToolRegistry, build_registry


@dataclass
class App:
    """The wired application."""
    config_loader: ConfigLoader
    performance: PerformanceManager
    bruno: BrunoCLI
    handlers: BrunoToolHandlers
    registry: ToolRegistry
    server: MCPServer

    def call_tool(self, name: str, arguments: Optional[dict] = None) -> str:
        """Call a tool by name, as ``tools/call`` would."""
        return self.server.call_tool(name, arguments or {})


def create_app(
    config_path: Optional[Union[str, Path]] = None,
    bruno_path: Optional[str] = None,
    verbose: bool = False,
) -> App:
    """Load configuration and wire the application.

    Args:
        config_path: Explicit config file (see ConfigLoader for the search order)
        bruno_path: Runner path overriding the configuration
        verbose: Force debug logging

    Raises:
        ConfigError: The configuration could not be loaded
    """
    config_loader = ConfigLoader()
    config = config_loader.load(config_path)

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "debug"})
    setup_logging(logging_config)

    performance = PerformanceManager(config.performance)
    bruno = BrunoCLI(config_loader, performance, bruno_path=bruno_path)
    handlers = BrunoToolHandlers(bruno, config_loader, performance)
    registry = build_registry(handlers)
    server = MCPServer(registry, performance, security=config.security)

    return App(
        config_loader=config_loader,
        performance=performance,
        bruno=bruno,
        handlers=handlers,
        registry=registry,
        server=server,
    )
