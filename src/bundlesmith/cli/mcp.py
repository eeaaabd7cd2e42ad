"""
MCP server connector commands.
"""

import logging
import shlex
from pathlib import Path

import click

from bundlesmith.cli.utils import (
    common_options,
    display_path,
    echo_findings,
    echo_next_steps,
    fail,
    resolve_config,
)
from bundlesmith.config import BundlesmithConfig, ConnectorStorage
from bundlesmith.connectors import (
    build_http_entry,
    build_stdio_entry,
    existing_storage,
    merge_entry,
    parse_env_assignment,
    referenced_env_vars,
    validate_connectors,
)
from bundlesmith.documents import load_json_object
from bundlesmith.errors import BundleError
from bundlesmith.findings import Severity
from bundlesmith.scaffold import require_manifest, validate_name
from bundlesmith.schema import TRANSPORTS

logger = logging.getLogger(__name__)

USAGE = "add-mcp-to-bundle <bundle-path> <server-name> <stdio|http>"


def _prompt_optional(text: str) -> str:
    return click.prompt(text, default="", show_default=False).strip()


def _gather_stdio(
    command: str | None, args: tuple[str, ...], env: tuple[str, ...]
) -> dict:
    interactive = command is None
    if interactive:
        command = _prompt_optional("Command path (e.g., ${CLAUDE_PLUGIN_ROOT}/servers/db-mcp)")
    if not command:
        fail("Command path is required")

    arg_list = list(args)
    env_assignments = list(env)
    # Prompted values extend any given with --arg/--env
    if interactive:
        line = _prompt_optional("Arguments (optional, space-separated)")
        try:
            arg_list.extend(shlex.split(line))
        except ValueError as e:
            fail(f"Invalid arguments: {e}")
        click.echo("Environment variables (optional), e.g. DB_PASSWORD=${DB_PASSWORD}")
        while True:
            assignment = _prompt_optional("  Add env var (leave blank to finish)")
            if not assignment:
                break
            env_assignments.append(assignment)

    try:
        env_map = dict(parse_env_assignment(a) for a in env_assignments)
        return build_stdio_entry(command, arg_list, env_map)
    except ValueError as e:
        fail(str(e))


def _gather_http(url: str | None, token_var: str | None) -> dict:
    interactive = url is None
    if interactive:
        url = _prompt_optional("URL (e.g., https://api.example.com/mcp/)")
    if not url:
        fail("URL is required")

    if interactive and token_var is None:
        if click.confirm("Need authentication?", default=False):
            token_var = _prompt_optional("Authentication token variable name (e.g., FIGMA_ACCESS_TOKEN)")
            if not token_var:
                fail("Token variable name is required")

    try:
        return build_http_entry(url, token_var)
    except ValueError as e:
        fail(str(e))


def _choose_storage(
    bundle_path: Path,
    config: BundlesmithConfig,
    inline: bool | None,
    interactive: bool,
) -> ConnectorStorage | None:
    """Storage preference for a bundle without connector storage yet."""
    if inline is not None:
        return "inline" if inline else "external"

    manifest = load_json_object(config.layout.manifest_path(bundle_path))
    if existing_storage(bundle_path, manifest, config) is not None or not interactive:
        return None

    use_external = click.confirm(
        f"Use separate {config.layout.connector_file} file? (recommended)", default=True
    )
    return "external" if use_external else "inline"


@click.command("add-mcp-to-bundle")
@click.argument("bundle_path", required=False, type=click.Path(path_type=Path))
@click.argument("server_name", required=False)
@click.argument("transport", required=False)
@click.option("--command", "command", help="stdio: command to launch")
@click.option("--arg", "args", multiple=True, help="stdio: command argument (repeatable)")
@click.option("--env", "env", multiple=True, help="stdio: NAME=value environment entry (repeatable)")
@click.option("--url", help="http: server URL")
@click.option("--token-var", help="http: environment variable holding a bearer token")
@click.option(
    "--inline/--external",
    "inline",
    default=None,
    help="Where to store servers when the bundle has none yet",
)
@common_options
@click.pass_context
def add_mcp_cmd(
    ctx: click.Context,
    bundle_path: Path | None,
    server_name: str | None,
    transport: str | None,
    command: str | None,
    args: tuple[str, ...],
    env: tuple[str, ...],
    url: str | None,
    token_var: str | None,
    inline: bool | None,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Add or replace an MCP server in a bundle.

    Missing fields are prompted for interactively. Re-adding a server with
    the same name replaces its entry.
    """
    config = resolve_config(ctx, config_file, verbose)

    if bundle_path is None or not server_name or not transport:
        fail("Bundle path, server name, and transport type are required", USAGE)

    if transport not in TRANSPORTS:
        fail(f"Transport type must be 'stdio' or 'http' (got: {transport})")

    name_error = validate_name(server_name, "server")
    if name_error:
        fail(name_error)

    try:
        require_manifest(bundle_path, config)
    except BundleError as e:
        fail(str(e))

    if transport == "stdio":
        interactive = command is None
        entry = _gather_stdio(command, args, env)
    else:
        interactive = url is None
        entry = _gather_http(url, token_var)

    try:
        storage = _choose_storage(bundle_path, config, inline, interactive)
        result = merge_entry(bundle_path, server_name, entry, config, storage)
        manifest = load_json_object(config.layout.manifest_path(bundle_path))
    except (BundleError, OSError) as e:
        fail(str(e))

    action = "Replaced" if result.replaced else "Added"
    click.echo(f"✓ {action} MCP server '{server_name}' ({transport}) in {display_path(result.path)}")
    if result.storage == "external" and result.manifest_updated:
        click.echo(f"✓ Manifest now references {config.layout.connector_reference}")

    findings = validate_connectors(bundle_path, manifest, config)
    echo_findings(findings)
    if any(f.severity is Severity.ERROR for f in findings):
        click.echo("Error: MCP configuration has errors", err=True)
        raise SystemExit(1)

    steps = [f'Set the environment variable: export {var}="..."' for var in referenced_env_vars(entry)]
    steps.append(f"Validate the bundle: validate-bundle {display_path(bundle_path)}")
    steps.append("Reinstall the bundle in the host application to pick up the change")
    echo_next_steps(steps)
