"""CLI interface for inspecting CLI resolution and the derived environment."""

import asyncio
import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .cli_env import summarize_env
from .cli_utils import ExecutableResolver
from .models import HealthStatus, ResolverConfig
from .platform_path import path_separator
from .resolver import CliResolver
from .shell_env import ShellEnvironmentProvider
from .validators import CliPathValidator

console = Console()

# Windows-compatible symbols (cp1252 doesn't support Unicode checkmarks)
if sys.platform == "win32":
    SYM_OK = "[OK]"
    SYM_FAIL = "[X]"
else:
    SYM_OK = "✓"
    SYM_FAIL = "✗"

STATUS_COLORS = {
    HealthStatus.OK: "green",
    HealthStatus.MISSING: "yellow",
    HealthStatus.VERSION_INCOMPATIBLE: "yellow",
    HealthStatus.PERMISSION_ERROR: "red",
    HealthStatus.VALIDATION_ERROR: "red",
}


@click.group()
@click.version_option(package_name="cli-env-resolver")
@click.option('--verbose', '-v', is_flag=True, help='Log resolution steps')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON file with resolver configuration')
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: Optional[str]):
    """Resolve and check the CLI and the user's shell environment."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    ctx.obj = ResolverConfig.load(config_file) if config_file else ResolverConfig()


@main.command()
@click.option('--path', 'configured_path', help='Configured CLI path to try before PATH')
@click.option('--no-cache', is_flag=True, help='Ignore any cached resolution')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table')
@click.pass_obj
def doctor(config: ResolverConfig, configured_path: Optional[str], no_cache: bool,
           output_format: str):
    """Resolve the CLI and report its health."""
    resolver = CliResolver(config)
    result = asyncio.run(resolver.resolve(configured_path=configured_path, skip_cache=no_cache))

    if output_format == "json":
        print(json.dumps(result.model_dump(mode="json")))
    else:
        color = STATUS_COLORS.get(result.status, "white")
        table = Table(title="CLI Health")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Status", f"[{color}]{result.status.value}[/{color}]")
        table.add_row("Path", result.path or "-")
        table.add_row("Version", result.version.version if result.version else "-")
        table.add_row("Minimum", config.minimum_version)
        if result.error:
            table.add_row("Error", f"[red]{result.error}[/red]")
        console.print(table)

    if not result.ok:
        sys.exit(1)


@main.command()
@click.argument('cli_path')
def validate(cli_path: str):
    """Check whether CLI_PATH is safe to use as the CLI executable."""
    reason = CliPathValidator().validate(cli_path)
    if reason is None:
        console.print(f"[green]{SYM_OK}[/green] {cli_path}")
        return
    console.print(f"[red]{SYM_FAIL}[/red] {reason}")
    sys.exit(1)


@main.command()
@click.pass_obj
def which(config: ResolverConfig):
    """Look up the CLI on the user's shell PATH."""
    async def _lookup() -> Optional[str]:
        env = await ShellEnvironmentProvider(config).get_environment()
        return await ExecutableResolver(config).resolve_from_path(env)

    found = asyncio.run(_lookup())
    if found is None:
        console.print(f"[yellow]{config.executable_name} not found in PATH[/yellow]")
        sys.exit(1)
    console.print(found)


@main.command()
@click.option('--show-path', is_flag=True, help='Print every PATH entry')
@click.pass_obj
def env(config: ResolverConfig, show_path: bool):
    """Summarize the environment derived from the user's shell."""
    provider = ShellEnvironmentProvider(config)
    derived = asyncio.run(provider.get_environment())
    cached = provider.cached
    kind = "fallback" if cached and cached.is_fallback else "full"

    table = Table(title=f"Shell Environment ({kind})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in summarize_env(derived).items():
        table.add_row(key, str(value))
    console.print(table)

    if show_path:
        for entry in derived.get("PATH", "").split(path_separator(provider.platform)):
            if entry:
                console.print(f"  {entry}")


if __name__ == '__main__':
    main()
