"""Bundle manifest validation.

``validate_bundle`` checks an on-disk bundle against the manifest schema,
checks every declared skill directory and descriptor, and runs the
connector validation pass. All checks run; each check is a pure function
returning its own list of findings, which the caller collects into a
``ValidationReport``. The only terminal conditions are a missing bundle,
a missing manifest and an unparseable manifest, since nothing else can be
checked without one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from bundlesmith.config import BundlesmithConfig
from bundlesmith.connectors import validate_connectors
from bundlesmith.documents import load_json_document, parse_front_matter
from bundlesmith.errors import MalformedDocumentError
from bundlesmith.findings import Finding, FindingCode, ValidationReport, error, warning
from bundlesmith.placeholders import find_placeholder
from bundlesmith.schema import (
    NAME_PATTERN,
    PATH_LIST_FIELDS,
    REQUIRED_AUTHOR_FIELDS,
    REQUIRED_FIELDS,
    SEMVER_PATTERN,
    FieldState,
    RequiredField,
    json_type_name,
    lookup_field,
)

logger = logging.getLogger(__name__)

SKILL_REQUIRED_FIELDS: tuple[RequiredField, ...] = (
    RequiredField("name", str, "string"),
    RequiredField("description", str, "string"),
)


def validate_bundle(bundle_path: Path, config: BundlesmithConfig) -> ValidationReport:
    """Validate a bundle directory.

    Args:
        bundle_path: Bundle root directory
        config: Layout and validation settings

    Returns:
        Report with every error and warning found. Validation is read-only;
        running it twice on an unchanged bundle yields identical reports.
    """
    report = ValidationReport(bundle_path=str(bundle_path))

    if not bundle_path.is_dir():
        report.add_error(FindingCode.PATH_NOT_FOUND, str(bundle_path), "Bundle directory does not exist")
        return report

    manifest_path = config.layout.manifest_path(bundle_path)
    manifest_location = str(manifest_path.relative_to(bundle_path))
    if not manifest_path.is_file():
        report.add_error(FindingCode.PATH_NOT_FOUND, manifest_location, "Manifest file not found")
        return report

    try:
        manifest = load_json_document(manifest_path)
    except MalformedDocumentError as e:
        report.add_error(FindingCode.MALFORMED_DOCUMENT, manifest_location, str(e))
        return report

    if not isinstance(manifest, dict):
        report.add_error(
            FindingCode.MALFORMED_DOCUMENT,
            manifest_location,
            f"Manifest must be a JSON object, got {json_type_name(manifest)}",
        )
        return report

    extra_tokens = config.validation.extra_placeholders

    report.extend(check_required_fields(manifest, extra_tokens))
    report.extend(check_skills(bundle_path, manifest, config))
    for field_name in PATH_LIST_FIELDS:
        report.extend(check_path_list(bundle_path, manifest, field_name))
    report.extend(validate_connectors(bundle_path, manifest, config))

    logger.debug(
        f"Validated {bundle_path}: {len(report.errors)} errors, {len(report.warnings)} warnings"
    )
    return report


def check_field(
    data: dict[str, Any],
    required: RequiredField,
    location: str,
    extra_tokens: Iterable[str] = (),
) -> list[Finding]:
    """Check one required field: missing, wrong type, blank or placeholder."""
    lookup = lookup_field(data, required.name, required.expected)

    if lookup.state is FieldState.MISSING:
        return [error(FindingCode.MISSING_REQUIRED_FIELD, location, "Missing required field")]

    if lookup.state is FieldState.INVALID_TYPE:
        return [
            error(
                FindingCode.INVALID_FIELD_TYPE,
                location,
                f"Expected {required.type_label}, got {json_type_name(lookup.value)}",
            )
        ]

    if isinstance(lookup.value, str):
        if not lookup.value.strip():
            return [error(FindingCode.MISSING_REQUIRED_FIELD, location, "Required field is empty")]
        token = find_placeholder(lookup.value, extra_tokens)
        if token is not None:
            label = getattr(token, "value", token)
            return [
                warning(
                    FindingCode.PLACEHOLDER_PRESENT,
                    location,
                    f"Contains {label} placeholder: {lookup.value}",
                )
            ]

    return []


def check_required_fields(
    manifest: dict[str, Any], extra_tokens: Iterable[str] = ()
) -> list[Finding]:
    """Check top-level required fields and the author sub-fields.

    Author sub-fields are only checked when ``author`` itself is an object;
    a missing or mistyped author is reported once.
    """
    extra_tokens = tuple(extra_tokens)
    findings: list[Finding] = []

    for required in REQUIRED_FIELDS:
        findings.extend(check_field(manifest, required, required.name, extra_tokens))

    author = lookup_field(manifest, "author", dict)
    if author.present:
        for required in REQUIRED_AUTHOR_FIELDS:
            findings.extend(check_field(author.value, required, f"author.{required.name}", extra_tokens))

    findings.extend(_check_identity_format(manifest, extra_tokens))
    return findings


def _check_identity_format(manifest: dict[str, Any], extra_tokens: tuple[str, ...]) -> list[Finding]:
    findings: list[Finding] = []

    name = manifest.get("name")
    if isinstance(name, str) and name.strip() and find_placeholder(name, extra_tokens) is None:
        if not NAME_PATTERN.match(name):
            findings.append(
                warning(
                    FindingCode.INVALID_FIELD_TYPE,
                    "name",
                    f"Bundle name '{name}' is not a lowercase hyphenated slug",
                )
            )

    version = manifest.get("version")
    if isinstance(version, str) and version.strip() and find_placeholder(version, extra_tokens) is None:
        if not SEMVER_PATTERN.match(version):
            findings.append(
                warning(
                    FindingCode.INVALID_FIELD_TYPE,
                    "version",
                    f"Version '{version}' is not a semantic version",
                )
            )

    return findings


def check_skills(bundle_path: Path, manifest: dict[str, Any], config: BundlesmithConfig) -> list[Finding]:
    """Check the skills array, or note that the bundle declares no capabilities."""
    skills = lookup_field(manifest, "skills", list)

    if skills.state is FieldState.MISSING:
        if manifest.get("components") is not None:
            return []
        return [
            warning(
                FindingCode.NO_CAPABILITIES,
                "skills",
                "No skills array or components object found",
            )
        ]

    if skills.state is FieldState.INVALID_TYPE:
        return [
            error(
                FindingCode.INVALID_FIELD_TYPE,
                "skills",
                f"Expected array, got {json_type_name(skills.value)}",
            )
        ]

    findings: list[Finding] = []
    for idx, entry in enumerate(skills.value):
        if not isinstance(entry, str) or not entry.strip():
            findings.append(
                error(
                    FindingCode.INVALID_FIELD_TYPE,
                    f"skills[{idx}]",
                    "Skill entry must be a non-empty relative path",
                )
            )
            continue
        findings.extend(check_skill_entry(bundle_path, entry, config))
    return findings


def check_skill_entry(bundle_path: Path, entry: str, config: BundlesmithConfig) -> list[Finding]:
    """Check one skills[] entry: directory, descriptor, front matter."""
    relative = entry.removeprefix("./")
    location = relative

    skill_dir = bundle_path / relative
    if not skill_dir.is_dir():
        return [error(FindingCode.REFERENCED_SKILL_MISSING, location, "Skill directory not found")]

    descriptor_name = config.layout.skill_descriptor
    descriptor = skill_dir / descriptor_name
    if not descriptor.is_file():
        return [
            error(FindingCode.REFERENCED_SKILL_MISSING, location, f"Missing {descriptor_name}")
        ]

    skills_root = (bundle_path / "skills").resolve()
    if not skill_dir.resolve().is_relative_to(skills_root):
        return [
            error(
                FindingCode.INVALID_FIELD_TYPE,
                location,
                "Skill path must point inside the bundle's skills/ directory",
            )
        ]

    return check_skill_descriptor(
        descriptor,
        f"{location}/{descriptor_name}",
        skill_dir.name,
        config.validation.extra_placeholders,
    )


def check_skill_descriptor(
    descriptor: Path,
    location: str,
    dir_name: str,
    extra_tokens: Iterable[str] = (),
) -> list[Finding]:
    """Check a skill descriptor's front matter."""
    try:
        text = descriptor.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return [
            warning(FindingCode.SKILL_DESCRIPTOR_MALFORMED, location, "Descriptor is not UTF-8 text")
        ]

    front_matter = parse_front_matter(text)
    if front_matter is None:
        return [
            warning(
                FindingCode.SKILL_DESCRIPTOR_MALFORMED,
                location,
                "Missing or unparseable YAML front matter",
            )
        ]

    extra_tokens = tuple(extra_tokens)
    findings: list[Finding] = []
    for required in SKILL_REQUIRED_FIELDS:
        findings.extend(
            check_field(front_matter, required, f"{location}:{required.name}", extra_tokens)
        )

    name = front_matter.get("name")
    if isinstance(name, str) and name.strip() and name != dir_name:
        findings.append(
            warning(
                FindingCode.SKILL_DESCRIPTOR_MALFORMED,
                f"{location}:name",
                f"Name '{name}' does not match directory '{dir_name}'",
            )
        )

    version = front_matter.get("version")
    if version is not None and not SEMVER_PATTERN.match(str(version)):
        findings.append(
            warning(
                FindingCode.INVALID_FIELD_TYPE,
                f"{location}:version",
                f"Version '{version}' is not a semantic version",
            )
        )

    return findings


def check_path_list(bundle_path: Path, manifest: dict[str, Any], field_name: str) -> list[Finding]:
    """Check an optional commands[]/agents[] array of file paths."""
    lookup = lookup_field(manifest, field_name, list)

    if lookup.state is FieldState.MISSING:
        return []

    if lookup.state is FieldState.INVALID_TYPE:
        return [
            error(
                FindingCode.INVALID_FIELD_TYPE,
                field_name,
                f"Expected array, got {json_type_name(lookup.value)}",
            )
        ]

    findings: list[Finding] = []
    for idx, entry in enumerate(lookup.value):
        if not isinstance(entry, str) or not entry.strip():
            findings.append(
                error(
                    FindingCode.INVALID_FIELD_TYPE,
                    f"{field_name}[{idx}]",
                    "Entry must be a non-empty relative path",
                )
            )
            continue
        relative = entry.removeprefix("./")
        if not (bundle_path / relative).exists():
            findings.append(error(FindingCode.PATH_NOT_FOUND, relative, f"Listed in {field_name} but not found"))
    return findings
