"""
Bundle scaffolding and validation commands.
"""

import json
import logging
from pathlib import Path

import click

from bundlesmith.cli.utils import (
    common_options,
    display_path,
    echo_next_steps,
    fail,
    resolve_config,
)
from bundlesmith.errors import BundleError
from bundlesmith.scaffold import add_skill, create_bundle, register_skill, skill_reference
from bundlesmith.validator import validate_bundle

logger = logging.getLogger(__name__)


@click.command("create-bundle")
@click.argument("name", required=False)
@click.option(
    "--with-all",
    "with_all",
    is_flag=True,
    help="Create commands/, agents/, hooks/ and mcp/ in addition to skills/",
)
@click.option(
    "--dir",
    "parent_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory to create the bundle in",
)
@common_options
@click.pass_context
def create_bundle_cmd(
    ctx: click.Context,
    name: str | None,
    with_all: bool,
    parent_dir: Path,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Create a new bundle directory structure."""
    config = resolve_config(ctx, config_file, verbose)

    if not name:
        fail("Bundle name is required", "create-bundle <bundle-name> [--with-all]")

    try:
        bundle_path = create_bundle(name, parent_dir, config, include_all_components=with_all)
    except (BundleError, OSError, ValueError) as e:
        fail(str(e))

    manifest = display_path(config.layout.manifest_path(bundle_path))
    click.echo(f"✓ Created bundle '{name}' at {display_path(bundle_path)}")
    if not with_all:
        click.echo("  Created skills/ only (use --with-all for all components)")

    echo_next_steps(
        [
            f"Edit {manifest}: update description and author information",
            f"Add skills: add-skill-to-bundle {display_path(bundle_path)} <skill-name>",
            "Register the bundle in your marketplace index",
        ]
    )


@click.command("add-skill-to-bundle")
@click.argument("bundle_path", required=False, type=click.Path(path_type=Path))
@click.argument("skill_name", required=False)
@click.option(
    "--register",
    is_flag=True,
    help="Also append the skill to the manifest's skills array",
)
@common_options
@click.pass_context
def add_skill_cmd(
    ctx: click.Context,
    bundle_path: Path | None,
    skill_name: str | None,
    register: bool,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Add a skill stub to an existing bundle."""
    config = resolve_config(ctx, config_file, verbose)

    if bundle_path is None or not skill_name:
        fail(
            "Bundle path and skill name are required",
            "add-skill-to-bundle <bundle-path> <skill-name>",
        )

    try:
        skill_path = add_skill(bundle_path, skill_name, config)
        registered = register_skill(bundle_path, skill_name, config) if register else False
    except (BundleError, OSError, ValueError) as e:
        fail(str(e))

    descriptor = display_path(skill_path / config.layout.skill_descriptor)
    click.echo(f"✓ Added skill '{skill_name}' at {display_path(skill_path)}")

    steps = [
        f"Edit {descriptor}: replace the TODO description with trigger phrases and add workflows",
        f"Add reference files, examples and helper scripts under {display_path(skill_path)}/",
    ]
    if registered:
        click.echo(f"✓ Registered {skill_reference(skill_name)} in the manifest")
    else:
        manifest = display_path(config.layout.manifest_path(bundle_path))
        steps.append(f'Add "{skill_reference(skill_name)}" to the skills array in {manifest}')
    echo_next_steps(steps)


@click.command("validate-bundle")
@click.argument("bundle_path", required=False, type=click.Path(path_type=Path))
@click.option("--json", "json_format", is_flag=True, help="Output report as JSON")
@common_options
@click.pass_context
def validate_bundle_cmd(
    ctx: click.Context,
    bundle_path: Path | None,
    json_format: bool,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Validate bundle structure, manifest, skills and MCP servers.

    Exits 0 when there are no errors, even if there are warnings.
    """
    config = resolve_config(ctx, config_file, verbose)

    if bundle_path is None:
        fail("Bundle path is required", "validate-bundle <bundle-path>")

    report = validate_bundle(bundle_path, config)

    if json_format:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(f"Validating bundle: {bundle_path}")
        click.echo("")
        click.echo(report.render())

    raise SystemExit(report.exit_code)
