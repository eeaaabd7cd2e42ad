"""Manifest and connector schemas.

The manifest contract has two forms:

- ``REQUIRED_FIELDS`` / ``REQUIRED_AUTHOR_FIELDS`` drive the accumulating
  manifest validator, which must tell "missing", "wrong type" and "present"
  apart for every field (see ``lookup_field``).
- Pydantic models (``BundleManifest``, ``StdioServerConfig``,
  ``HttpServerConfig``) describe complete documents. The scaffolder builds
  manifests from them and the connector validator checks entries with them.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")

# Semantic version with optional pre-release/build suffix
SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

MCP_SERVERS_KEY = "mcpServers"

Transport = Literal["stdio", "http"]
TRANSPORTS: tuple[Transport, ...] = ("stdio", "http")

# Fields owned by each transport; a field from the other set is extraneous.
TRANSPORT_FIELDS: dict[str, tuple[str, ...]] = {
    "stdio": ("command", "args", "env"),
    "http": ("url", "headers"),
}
TRANSPORT_REQUIRED_FIELD: dict[str, str] = {"stdio": "command", "http": "url"}


class FieldState(str, Enum):
    MISSING = "missing"
    INVALID_TYPE = "invalid_type"
    PRESENT = "present"


@dataclass(frozen=True)
class RequiredField:
    name: str
    expected: type
    type_label: str


REQUIRED_FIELDS: tuple[RequiredField, ...] = (
    RequiredField("name", str, "string"),
    RequiredField("version", str, "string"),
    RequiredField("description", str, "string"),
    RequiredField("author", dict, "object"),
)

REQUIRED_AUTHOR_FIELDS: tuple[RequiredField, ...] = (
    RequiredField("name", str, "string"),
    RequiredField("email", str, "string"),
)

# Optional arrays of relative file paths
PATH_LIST_FIELDS: tuple[str, ...] = ("commands", "agents")


@dataclass(frozen=True)
class FieldLookup:
    state: FieldState
    value: Any = None

    @property
    def present(self) -> bool:
        return self.state is FieldState.PRESENT


def lookup_field(data: Mapping[str, Any], key: str, expected: type) -> FieldLookup:
    """Look up a key and classify it as missing, wrongly typed or present.

    A JSON ``null`` counts as missing.
    """
    if key not in data or data[key] is None:
        return FieldLookup(FieldState.MISSING)
    value = data[key]
    if not isinstance(value, expected):
        return FieldLookup(FieldState.INVALID_TYPE, value)
    return FieldLookup(FieldState.PRESENT, value)


def json_type_name(value: Any) -> str:
    """Describe a decoded JSON value's type in JSON terms."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "null" if value is None else type(value).__name__


class AuthorInfo(BaseModel):
    """Bundle author."""

    name: str
    email: str


class BundleManifest(BaseModel):
    """Bundle manifest document (``.manifest/bundle.json``)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(description="Unique bundle slug")
    version: str = Field(description="Semantic version")
    description: str
    author: AuthorInfo
    skills: list[str] = Field(
        default_factory=list,
        description="Relative paths of skill directories",
    )
    commands: list[str] | None = None
    agents: list[str] | None = None
    mcp_servers: dict[str, Any] | str | None = Field(
        default=None,
        alias=MCP_SERVERS_KEY,
        description="Inline connector mapping or path to an external connector file",
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the on-disk JSON shape, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class StdioServerConfig(BaseModel):
    """Connector that launches a local process and talks over stdio."""

    model_config = ConfigDict(extra="allow", strict=True)

    transport: Literal["stdio"] = "stdio"
    command: str = Field(min_length=1)
    args: list[str] | None = None
    env: dict[str, str] | None = None


class HttpServerConfig(BaseModel):
    """Connector reached over HTTP."""

    model_config = ConfigDict(extra="allow", strict=True)

    transport: Literal["http"] = "http"
    url: str = Field(min_length=1)
    headers: dict[str, str] | None = None


CONNECTOR_MODELS: dict[str, type[BaseModel]] = {
    "stdio": StdioServerConfig,
    "http": HttpServerConfig,
}
