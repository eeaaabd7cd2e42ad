"""
Configuration management for bundlesmith.

Provides YAML-based configuration with CLI overrides,
configuration hierarchy (CLI > YAML > Defaults), and validation.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from bundlesmith.schema import SEMVER_PATTERN

ConnectorStorage = Literal["external", "inline"]


def get_bundlesmith_home() -> Path:
    """Get bundlesmith home directory, respecting BUNDLESMITH_HOME env var."""
    home = os.environ.get("BUNDLESMITH_HOME")
    if home:
        return Path(home)
    return Path.home() / ".bundlesmith"


class LayoutSettings(BaseModel):
    """Where bundle documents live relative to the bundle root."""

    manifest_dir: str = Field(
        default=".manifest",
        description="Directory holding the bundle manifest",
    )
    manifest_file: str = Field(
        default="bundle.json",
        description="Manifest file name inside manifest_dir",
    )
    connector_file: str = Field(
        default=".mcp.json",
        description="External MCP server file at the bundle root",
    )
    skill_descriptor: str = Field(
        default="SKILL.md",
        description="Descriptor file name inside each skill directory",
    )

    @field_validator("manifest_dir", "manifest_file", "connector_file", "skill_descriptor")
    @classmethod
    def validate_relative_name(cls, v: str) -> str:
        """Validate value is a plain relative name."""
        if not v or Path(v).is_absolute() or ".." in Path(v).parts:
            raise ValueError("Must be a non-empty path relative to the bundle root")
        return v

    def manifest_path(self, bundle_path: Path) -> Path:
        return bundle_path / self.manifest_dir / self.manifest_file

    def connector_path(self, bundle_path: Path) -> Path:
        return bundle_path / self.connector_file

    @property
    def connector_reference(self) -> str:
        """Manifest value that points at the external connector file."""
        return f"./{self.connector_file}"


class ScaffoldSettings(BaseModel):
    """Defaults used when generating bundles and connector entries."""

    default_version: str = Field(
        default="1.0.0",
        description="Version written into new manifests and skill descriptors",
    )
    connector_storage: ConnectorStorage = Field(
        default="external",
        description="Where new MCP servers go when a bundle has none yet",
    )

    @field_validator("default_version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        """Validate default version is a semantic version."""
        if not SEMVER_PATTERN.match(v):
            raise ValueError(f"Not a semantic version: {v}")
        return v


class ValidationSettings(BaseModel):
    """Validation policy knobs."""

    extra_placeholders: list[str] = Field(
        default_factory=list,
        description="Additional placeholder sentinels, matched exactly or as '<token>:' prefix",
    )

    @field_validator("extra_placeholders")
    @classmethod
    def validate_tokens(cls, v: list[str]) -> list[str]:
        """Validate tokens are non-blank."""
        if any(not token.strip() for token in v):
            raise ValueError("Placeholder tokens must be non-empty")
        return [token.strip() for token in v]


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Log level when --verbose is not given",
    )


class BundlesmithConfig(BaseModel):
    """Top-level bundlesmith configuration."""

    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    scaffold: ScaffoldSettings = Field(default_factory=ScaffoldSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def default_config_path() -> Path:
    return get_bundlesmith_home() / "config.yaml"


def load_yaml(config_file: str | Path) -> dict[str, Any]:
    """
    Load YAML or JSON configuration file.

    Args:
        config_file: Path to YAML or JSON configuration file

    Returns:
        Dictionary with parsed YAML/JSON content, empty if the file is missing

    Raises:
        ValueError: If YAML/JSON is invalid or file format is wrong
    """
    config_path = Path(config_file).expanduser()

    if not config_path.exists():
        return {}

    file_ext = config_path.suffix.lower()
    if file_ext not in [".yaml", ".yml", ".json"]:
        raise ValueError(
            f"Config file must have .yaml, .yml, or .json extension, got: {file_ext}\n"
            f"File: {config_path}"
        )

    try:
        content = config_path.read_text(encoding="utf-8")

        if file_ext == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return data


def apply_cli_overrides(
    config_dict: dict[str, Any],
    cli_overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Apply CLI argument overrides to config dictionary.

    Nested keys use dot notation, e.g. ``{"logging.level": "debug"}``.
    """
    if cli_overrides is None:
        return config_dict

    for key, value in cli_overrides.items():
        parts = key.split(".")
        current = config_dict
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    return config_dict


def load_config(
    config_file: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> BundlesmithConfig:
    """
    Load configuration with hierarchy: CLI > YAML > Defaults.

    Args:
        config_file: Path to YAML config file (default: ~/.bundlesmith/config.yaml)
        cli_overrides: Dictionary of CLI argument overrides

    Returns:
        Validated BundlesmithConfig instance

    Raises:
        ValueError: If configuration is invalid
    """
    if config_file is None:
        config_file = default_config_path()

    config_dict = load_yaml(config_file)
    config_dict = apply_cli_overrides(config_dict, cli_overrides)

    try:
        return BundlesmithConfig(**config_dict)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed: {e}\n"
            f"Please check your configuration file at {config_file}"
        ) from e
