"""CLI entry point for Bruno MCP."""

import sys
from typing import Any, Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from . import __version__
from .app import App, create_app
from .errors import ConfigError, ToolError

console = Console()
err_console = Console(stderr=True)


def _env_pairs(values: Tuple[str, ...]) -> Dict[str, str]:
    """Turn repeated ``KEY=VALUE`` options into a dict."""
    pairs: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--env-var")
        pairs[key] = value
    return pairs


def _get_app(ctx: click.Context) -> App:
    if ctx.obj.get("app") is None:
        try:
            ctx.obj["app"] = create_app(
                config_path=ctx.obj["config"],
                bruno_path=ctx.obj["bruno_path"],
                verbose=ctx.obj["verbose"],
            )
        except ConfigError as e:
            err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
            sys.exit(1)
    return ctx.obj["app"]


def _run_tool(ctx: click.Context, tool: str, arguments: Dict[str, Any], title: Optional[str] = None) -> None:
    """Call a tool and print its text; tool errors exit with status 1."""
    app = _get_app(ctx)
    try:
        text = app.call_tool(tool, arguments)
    except ToolError as e:
        err_console.print(f"[red]Error ({e.code}):[/red] {escape(e.message)}", highlight=False)
        sys.exit(1)

    if title:
        console.print(Panel(Text(text), title=title, expand=False), highlight=False)
    else:
        console.print(text, markup=False, highlight=False, soft_wrap=True)


def _without_none(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in arguments.items() if value is not None}


@click.group()
@click.version_option(version=__version__, prog_name="bruno-mcp")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a bruno-mcp config file (JSON or YAML)",
)
@click.option(
    "--bruno-path",
    default=None,
    help="Path to the bru runner (overrides the config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def cli(ctx, config_path: Optional[str], bruno_path: Optional[str], verbose: bool):
    """Bruno MCP: run and inspect Bruno API collections.

    Run 'bruno-mcp serve' to start the stdio tool server.
    Every other command calls the same tool the server exposes.
    """
    ctx.ensure_object(dict)
    ctx.obj.update({"config": config_path, "bruno_path": bruno_path, "verbose": verbose, "app": None})


@cli.command()
@click.pass_context
def serve(ctx):
    """Start the JSON-RPC tool server on stdin/stdout.

    \b
    Example:
        bruno-mcp serve
        bruno-mcp --config bruno-mcp.config.json serve
    """
    app = _get_app(ctx)
    try:
        app.server.run_stdio()
    except KeyboardInterrupt:
        sys.exit(130)


@cli.command()
@click.argument("search_path", type=click.Path(exists=True, file_okay=False))
@click.option("--max-depth", "-d", type=int, default=5, show_default=True, help="Maximum depth (capped at 10)")
@click.pass_context
def discover(ctx, search_path: str, max_depth: int):
    """Find Bruno collections below SEARCH_PATH."""
    _run_tool(ctx, "bruno_discover_collections", {"searchPath": search_path, "maxDepth": max_depth})


@cli.command()
@click.argument("collection_path")
@click.pass_context
def requests(ctx, collection_path: str):
    """List the requests of a collection."""
    _run_tool(ctx, "bruno_list_requests", {"collectionPath": collection_path})


@cli.command()
@click.argument("collection_path")
@click.argument("request_name")
@click.pass_context
def details(ctx, collection_path: str, request_name: str):
    """Show the parsed contents of one request."""
    _run_tool(
        ctx,
        "bruno_get_request_details",
        {"collectionPath": collection_path, "requestName": request_name},
    )


@cli.command()
@click.argument("collection_path")
@click.pass_context
def environments(ctx, collection_path: str):
    """List the environments of a collection."""
    _run_tool(ctx, "bruno_list_environments", {"collectionPath": collection_path})


@cli.command("validate-env")
@click.argument("collection_path")
@click.argument("environment_name")
@click.pass_context
def validate_env(ctx, collection_path: str, environment_name: str):
    """Validate one environment file."""
    _run_tool(
        ctx,
        "bruno_validate_environment",
        {"collectionPath": collection_path, "environmentName": environment_name},
    )


@cli.command()
@click.argument("collection_path")
@click.pass_context
def validate(ctx, collection_path: str):
    """Validate a collection's manifest, requests and environments."""
    _run_tool(ctx, "bruno_validate_collection", {"collectionPath": collection_path}, title="Validation")


def _run_options(func):
    """Options shared by ``run`` and ``run-collection``."""
    options = [
        click.option("--env", "-e", "environment", default=None, help="Environment name or path"),
        click.option("--env-var", "env_vars", multiple=True, help="Variable override KEY=VALUE (repeatable)"),
        click.option("--reporter-json", default=None, help="Write a JSON report to this path"),
        click.option("--reporter-junit", default=None, help="Write a JUnit XML report to this path"),
        click.option("--reporter-html", default=None, help="Write an HTML report to this path"),
        click.option("--dry-run", is_flag=True, help="Validate without sending HTTP requests"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_arguments(
    environment: Optional[str],
    env_vars: Tuple[str, ...],
    reporter_json: Optional[str],
    reporter_junit: Optional[str],
    reporter_html: Optional[str],
    dry_run: bool,
) -> Dict[str, Any]:
    return _without_none({
        "environment": environment,
        "envVariables": _env_pairs(env_vars) or None,
        "reporterJson": reporter_json,
        "reporterJunit": reporter_junit,
        "reporterHtml": reporter_html,
        "dryRun": dry_run,
    })


@cli.command()
@click.argument("collection_path")
@click.argument("request_name")
@_run_options
@click.pass_context
def run(ctx, collection_path: str, request_name: str, **options):
    """Run one request of a collection.

    \b
    Example:
        bruno-mcp run ./api-tests "Get Users" --env dev
        bruno-mcp run ./api-tests "Create User" --env-var userId=42 --dry-run
    """
    arguments = {"collectionPath": collection_path, "requestName": request_name}
    arguments.update(_run_arguments(**options))
    _run_tool(ctx, "bruno_run_request", arguments)


@cli.command("run-collection")
@click.argument("collection_path")
@click.option("--folder", "-f", "folder_path", default=None, help="Run only this folder")
@_run_options
@click.pass_context
def run_collection(ctx, collection_path: str, folder_path: Optional[str], **options):
    """Run every request of a collection, or of one folder."""
    arguments: Dict[str, Any] = {"collectionPath": collection_path}
    if folder_path:
        arguments["folderPath"] = folder_path
    arguments.update(_run_arguments(**options))
    _run_tool(ctx, "bruno_run_collection", arguments)


@cli.command()
@click.option("--metrics", is_flag=True, help="Include performance metrics")
@click.option("--cache-stats", is_flag=True, help="Include cache statistics")
@click.pass_context
def health(ctx, metrics: bool, cache_stats: bool):
    """Show server, runner and configuration status."""
    _run_tool(
        ctx,
        "bruno_health_check",
        {"includeMetrics": metrics, "includeCacheStats": cache_stats},
        title="Health",
    )


def main(argv: Optional[List[str]] = None) -> None:
    cli.main(args=argv, prog_name="bruno-mcp")


if __name__ == "__main__":
    main()
