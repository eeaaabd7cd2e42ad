"""Skeleton documents used by the scaffolder.

Every value that needs a human decision is an explicit placeholder
sentinel (see ``bundlesmith.placeholders``); nothing is inferred.
"""

from __future__ import annotations

from typing import Any

from bundlesmith.placeholders import PlaceholderToken, placeholder_text
from bundlesmith.schema import MCP_SERVERS_KEY, AuthorInfo, BundleManifest

MINIMAL_COMPONENT_DIRS: tuple[str, ...] = ("skills",)
ALL_COMPONENT_DIRS: tuple[str, ...] = ("skills", "commands", "agents", "hooks", "mcp")

# Advisory subdirectories; not required by the schema
SKILL_SUBDIRS: tuple[str, ...] = ("references", "examples", "scripts")

BUNDLE_DESCRIPTION_PLACEHOLDER = placeholder_text(PlaceholderToken.TODO, "Add bundle description")
AUTHOR_NAME_PLACEHOLDER = placeholder_text(PlaceholderToken.TODO, "Add your name")
AUTHOR_EMAIL_PLACEHOLDER = placeholder_text(PlaceholderToken.TODO, "Add your email")
SKILL_DESCRIPTION_PLACEHOLDER = placeholder_text(
    PlaceholderToken.TODO,
    "Describe when this skill should be used, with specific trigger phrases and use cases.",
)

SKILL_BODY_TEMPLATE = """\
# {display_name}

TODO: Add skill description and purpose

## Core Workflows

TODO: Add core workflows and procedures

## Additional Resources

### Reference Files

For detailed guidance:
- **`references/patterns.md`** - TODO: Add reference files as needed

### Example Files

Working examples in `examples/`:
- **`examples/basic-usage.sh`** - TODO: Add examples as needed

### Utility Scripts

Helper scripts in `scripts/`:
- **`scripts/helper.sh`** - TODO: Add utility scripts as needed
"""


def display_name(slug: str) -> str:
    """Turn ``react-patterns`` into ``React Patterns``."""
    return slug.replace("-", " ").title()


def manifest_template(name: str, version: str) -> dict[str, Any]:
    """Manifest document for a freshly created bundle."""
    manifest = BundleManifest(
        name=name,
        version=version,
        description=BUNDLE_DESCRIPTION_PLACEHOLDER,
        author=AuthorInfo(name=AUTHOR_NAME_PLACEHOLDER, email=AUTHOR_EMAIL_PLACEHOLDER),
        skills=[],
    )
    return manifest.to_document()


def skill_descriptor_template(name: str, version: str) -> str:
    """SKILL.md content for a new skill."""
    # Must be quoted; a bare "TODO: ..." scalar is invalid YAML
    front_matter = (
        "---\n"
        f"name: {name}\n"
        f'description: "{SKILL_DESCRIPTION_PLACEHOLDER}"\n'
        f"version: {version}\n"
        "---\n"
    )
    return front_matter + "\n" + SKILL_BODY_TEMPLATE.format(display_name=display_name(name))


def connector_file_template() -> dict[str, Any]:
    """Empty external connector document."""
    return {MCP_SERVERS_KEY: {}}
