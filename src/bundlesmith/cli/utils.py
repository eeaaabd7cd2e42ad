"""
Shared utilities for CLI commands.
"""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click

from bundlesmith.config import BundlesmithConfig, load_config
from bundlesmith.findings import Finding, Severity

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def setup_logging(level: str = "warning") -> None:
    """
    Configure logging for CLI.

    Args:
        level: Configured level name (``--verbose`` overrides it to debug)
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("bundlesmith").setLevel(log_level)


def common_options(f: F) -> F:
    """Add --config and --verbose to a command usable standalone or in the group."""
    f = click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")(f)
    f = click.option(
        "--config",
        "config_file",
        type=click.Path(exists=True, dir_okay=False),
        help="Path to custom configuration file",
    )(f)
    return f


def cli_overrides(verbose: bool) -> dict[str, Any] | None:
    """Config overrides implied by command-line flags."""
    return {"logging.level": "debug"} if verbose else None


def resolve_config(ctx: click.Context, config_file: str | None, verbose: bool) -> BundlesmithConfig:
    """Load config for a command, honoring options given to the parent group.

    Options on the command win over the group's.
    """
    obj = ctx.find_object(dict) or {}
    verbose = verbose or obj.get("verbose", False)
    config_file = config_file or obj.get("config_file")

    try:
        config = load_config(config_file, cli_overrides(verbose))
    except ValueError as e:
        fail(str(e))

    setup_logging(config.logging.level)
    return config


def fail(message: str, usage: str | None = None) -> NoReturn:
    """Print an error (and optional usage line) to stderr and exit 1."""
    click.echo(f"Error: {message}", err=True)
    if usage:
        click.echo(f"Usage: {usage}", err=True)
    raise SystemExit(1)


def echo_findings(findings: Iterable[Finding]) -> None:
    for finding in findings:
        color = "red" if finding.severity is Severity.ERROR else "yellow"
        click.secho(finding.render(), fg=color)


def echo_next_steps(steps: Iterable[str]) -> None:
    click.echo("")
    click.echo("Next steps:")
    for number, step in enumerate(steps, start=1):
        click.echo(f"{number}. {step}")
    click.echo("")


def display_path(path: Path) -> str:
    """Path relative to the working directory when possible."""
    try:
        return str(path.resolve().relative_to(Path.cwd().resolve()))
    except ValueError:
        return str(path)
