"""Bundle and skill scaffolding.

Creates a bundle skeleton from the templates, or adds a skill subtree to
an existing bundle. Scaffolding is fail-fast: each step assumes the
previous one succeeded, so the first blocking condition raises.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bundlesmith.config import BundlesmithConfig
from bundlesmith.documents import load_json_object, write_json_atomic
from bundlesmith.errors import (
    BundleExistsError,
    BundleNotFoundError,
    MalformedDocumentError,
    SkillExistsError,
)
from bundlesmith.schema import NAME_PATTERN
from bundlesmith.templates import (
    ALL_COMPONENT_DIRS,
    MINIMAL_COMPONENT_DIRS,
    SKILL_SUBDIRS,
    manifest_template,
    skill_descriptor_template,
)

logger = logging.getLogger(__name__)


def validate_name(name: str, kind: str = "bundle") -> str | None:
    """Validate a bundle or skill name against naming conventions.

    Returns None if valid, or an error message string if invalid.
    """
    if not name or not NAME_PATTERN.match(name):
        return (
            f"Invalid {kind} name '{name}'. "
            "Name must be lowercase letters, digits, and hyphens only. "
            "Must start with a letter and cannot have leading/trailing or consecutive hyphens."
        )
    return None


def require_manifest(bundle_path: Path, config: BundlesmithConfig) -> Path:
    """Return the manifest path of an existing bundle.

    Only checks existence; full validation is ``validate_bundle``'s job.

    Raises:
        BundleNotFoundError: If the bundle directory or manifest is missing
    """
    if not bundle_path.is_dir():
        raise BundleNotFoundError("Bundle path does not exist", bundle_path)

    manifest_path = config.layout.manifest_path(bundle_path)
    if not manifest_path.is_file():
        raise BundleNotFoundError("No manifest found", manifest_path)
    return manifest_path


def create_bundle(
    name: str,
    parent_dir: Path,
    config: BundlesmithConfig,
    include_all_components: bool = False,
) -> Path:
    """Create a new bundle directory with a placeholder manifest.

    Args:
        name: Bundle slug; becomes the directory name and manifest name
        parent_dir: Directory the bundle is created in
        config: Layout and scaffold defaults
        include_all_components: Also create commands/, agents/, hooks/ and mcp/

    Returns:
        Path to the created bundle directory.

    Raises:
        ValueError: If name is invalid.
        BundleExistsError: If the bundle directory already exists.
    """
    error = validate_name(name, "bundle")
    if error:
        raise ValueError(error)

    bundle_path = parent_dir / name
    if bundle_path.exists():
        raise BundleExistsError(f"Bundle '{name}' already exists", bundle_path)

    component_dirs = ALL_COMPONENT_DIRS if include_all_components else MINIMAL_COMPONENT_DIRS

    bundle_path.mkdir(parents=True)
    for dirname in component_dirs:
        (bundle_path / dirname).mkdir()

    manifest_path = config.layout.manifest_path(bundle_path)
    write_json_atomic(manifest_path, manifest_template(name, config.scaffold.default_version))

    logger.info(f"Created bundle {name} at {bundle_path} ({', '.join(component_dirs)})")
    return bundle_path


def add_skill(bundle_path: Path, skill_name: str, config: BundlesmithConfig) -> Path:
    """Add a skill stub to an existing bundle.

    Writes ``skills/<skill_name>/SKILL.md`` with placeholder front matter and
    creates the advisory references/, examples/ and scripts/ directories.
    The manifest's skills array is left untouched; see ``register_skill``.

    Returns:
        Path to the created skill directory.

    Raises:
        ValueError: If skill_name is invalid.
        BundleNotFoundError: If the bundle or its manifest is missing.
        SkillExistsError: If the skill directory already exists.
    """
    error = validate_name(skill_name, "skill")
    if error:
        raise ValueError(error)

    require_manifest(bundle_path, config)

    skill_path = bundle_path / "skills" / skill_name
    if skill_path.exists():
        raise SkillExistsError(f"Skill '{skill_name}' already exists", skill_path)

    skill_path.mkdir(parents=True)
    for dirname in SKILL_SUBDIRS:
        (skill_path / dirname).mkdir()

    descriptor = skill_path / config.layout.skill_descriptor
    descriptor.write_text(
        skill_descriptor_template(skill_name, config.scaffold.default_version),
        encoding="utf-8",
    )

    logger.info(f"Added skill {skill_name} to {bundle_path}")
    return skill_path


def skill_reference(skill_name: str) -> str:
    """Manifest entry for a skill directory."""
    return f"./skills/{skill_name}"


def register_skill(bundle_path: Path, skill_name: str, config: BundlesmithConfig) -> bool:
    """Append a skill to the manifest's skills array.

    Returns:
        True if the manifest was changed, False if the skill was already listed.

    Raises:
        BundleNotFoundError: If the bundle or its manifest is missing.
        MalformedDocumentError: If the manifest cannot be parsed or its
            skills field is not an array.
    """
    manifest_path = require_manifest(bundle_path, config)
    manifest = load_json_object(manifest_path)

    skills = manifest.setdefault("skills", [])
    if not isinstance(skills, list):
        raise MalformedDocumentError("Manifest 'skills' field must be an array", manifest_path)

    reference = skill_reference(skill_name)
    listed = {entry.removeprefix("./") for entry in skills if isinstance(entry, str)}
    if reference.removeprefix("./") in listed:
        logger.debug(f"Skill {skill_name} already listed in {manifest_path}")
        return False

    skills.append(reference)
    write_json_atomic(manifest_path, manifest)
    logger.info(f"Registered {reference} in {manifest_path}")
    return True
