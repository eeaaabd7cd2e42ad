"""
bundlesmith CLI entry point.

Each command is also installed as a standalone executable
(``create-bundle``, ``add-skill-to-bundle``, ``add-mcp-to-bundle``,
``validate-bundle``).
"""

import click

from bundlesmith.config import load_config

from .bundles import add_skill_cmd, create_bundle_cmd, validate_bundle_cmd
from .mcp import add_mcp_cmd
from .utils import cli_overrides, fail


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to custom configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="bundlesmith")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """bundlesmith - scaffold and validate capability bundles."""
    ctx.ensure_object(dict)
    try:
        load_config(config, cli_overrides(verbose))
    except ValueError as e:
        fail(str(e))
    ctx.obj["config_file"] = config
    ctx.obj["verbose"] = verbose


# Register commands
cli.add_command(create_bundle_cmd)
cli.add_command(add_skill_cmd)
cli.add_command(add_mcp_cmd)
cli.add_command(validate_bundle_cmd)
