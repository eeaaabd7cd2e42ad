"""MCP server connector configuration: validation and merging.

A bundle declares MCP servers in one of two places:

- an external ``.mcp.json`` file at the bundle root, holding
  ``{"mcpServers": {...}}``, referenced from the manifest as
  ``"mcpServers": "./.mcp.json"``
- inline, as a ``mcpServers`` mapping inside the manifest

The two are mutually exclusive by convention. When both exist the inline
mapping is authoritative everywhere: validation checks the inline entries
only and reports the conflict, and merging writes to the inline mapping.

Each entry is validated against its transport's model: ``stdio`` needs a
``command`` (optional ``args`` list and ``env`` mapping), ``http`` needs a
``url`` (optional ``headers`` mapping). Unknown transports are only a
warning so newer host transports do not fail validation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bundlesmith.config import BundlesmithConfig, ConnectorStorage
from bundlesmith.documents import load_json_object, write_json_atomic
from bundlesmith.errors import MalformedDocumentError
from bundlesmith.findings import Finding, FindingCode, error, warning
from bundlesmith.scaffold import require_manifest
from bundlesmith.schema import (
    CONNECTOR_MODELS,
    MCP_SERVERS_KEY,
    TRANSPORT_FIELDS,
    TRANSPORT_REQUIRED_FIELD,
    TRANSPORTS,
    HttpServerConfig,
    StdioServerConfig,
    json_type_name,
)
from bundlesmith.templates import connector_file_template

logger = logging.getLogger(__name__)

ENV_VAR_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
INTERPOLATION_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Host-native spelling of the transport key, accepted when reading
TRANSPORT_ALIAS = "type"
DEFAULT_TRANSPORT = "stdio"


def entry_transport(entry: Mapping[str, Any]) -> Any:
    """Declared transport of an entry; defaults to stdio when absent."""
    if entry.get("transport") is not None:
        return entry["transport"]
    if entry.get(TRANSPORT_ALIAS) is not None:
        return entry[TRANSPORT_ALIAS]
    return DEFAULT_TRANSPORT


def validate_entry(name: str, entry: Any, prefix: str = MCP_SERVERS_KEY) -> list[Finding]:
    """Validate one MCP server entry against its transport's schema.

    Args:
        name: Server name (the entry's key)
        entry: Decoded entry value
        prefix: Location prefix for findings, e.g. ``mcpServers``

    Returns:
        Findings for this entry. Shape problems in optional fields are
        errors, since they fail when the host launches the server.
    """
    location = f"{prefix}.{name}"

    if not isinstance(entry, dict):
        return [
            error(
                FindingCode.INVALID_FIELD_TYPE,
                location,
                f"Server entry must be an object, got {json_type_name(entry)}",
            )
        ]

    transport = entry_transport(entry)
    if transport not in TRANSPORTS:
        return [
            warning(
                FindingCode.UNKNOWN_TRANSPORT,
                location,
                f"Unknown transport {transport!r}; fields not checked",
            )
        ]

    # null counts as absent; the alias key is not part of the model
    payload = {
        key: value
        for key, value in entry.items()
        if value is not None and key != TRANSPORT_ALIAS
    }
    payload["transport"] = transport

    findings: list[Finding] = []
    required = TRANSPORT_REQUIRED_FIELD[transport]
    try:
        CONNECTOR_MODELS[transport].model_validate(payload)
    except ValidationError as exc:
        for err in exc.errors():
            loc = [str(part) for part in err["loc"]]
            field_location = ".".join([location, *loc])
            if loc == [required] and err["type"] in ("missing", "string_too_short"):
                findings.append(
                    error(
                        FindingCode.TRANSPORT_FIELD_MISSING,
                        field_location,
                        f"'{required}' is required for {transport} transport",
                    )
                )
            else:
                findings.append(error(FindingCode.INVALID_FIELD_TYPE, field_location, err["msg"]))

    for other, fields in TRANSPORT_FIELDS.items():
        if other == transport:
            continue
        for field_name in fields:
            if field_name in entry:
                findings.append(
                    warning(
                        FindingCode.EXTRANEOUS_TRANSPORT_FIELD,
                        f"{location}.{field_name}",
                        f"'{field_name}' belongs to {other} transport and is ignored for {transport}",
                    )
                )

    return findings


def _validate_entries(servers: Mapping[str, Any], prefix: str) -> list[Finding]:
    findings: list[Finding] = []
    for name, entry in servers.items():
        findings.extend(validate_entry(name, entry, prefix))
    return findings


def load_external_servers(path: Path) -> dict[str, Any]:
    """Load the mcpServers mapping of an external connector file.

    Raises:
        MalformedDocumentError: If the file is not JSON or lacks the mapping
    """
    document = load_json_object(path)
    servers = document.get(MCP_SERVERS_KEY)
    if not isinstance(servers, dict):
        raise MalformedDocumentError(f"Missing '{MCP_SERVERS_KEY}' object", path)
    return servers


def validate_connectors(
    bundle_path: Path,
    manifest: Mapping[str, Any],
    config: BundlesmithConfig,
) -> list[Finding]:
    """Validate a bundle's MCP server definitions.

    Resolution order:

    1. An external connector file is parsed if present; a parse failure
       is an error.
    2. A non-empty inline mapping wins over the external file: its entries
       are validated and a conflict warning is emitted if the external file
       also exists. Otherwise the external entries are validated, and a
       string ``mcpServers`` value is cross-checked against the file.
    3. With neither form present, connectors are optional and nothing is
       reported.
    """
    layout = config.layout
    external_path = layout.connector_path(bundle_path)
    external_location = layout.connector_file
    inline = manifest.get(MCP_SERVERS_KEY)

    findings: list[Finding] = []

    external_exists = external_path.is_file()
    external_servers: dict[str, Any] | None = None
    if external_exists:
        try:
            external_servers = load_external_servers(external_path)
        except MalformedDocumentError as e:
            findings.append(error(FindingCode.MALFORMED_DOCUMENT, external_location, str(e)))

    if isinstance(inline, dict) and inline:
        if external_exists:
            ignored = len(external_servers) if external_servers is not None else 0
            findings.append(
                warning(
                    FindingCode.CONFLICTING_CONNECTOR_STORAGE,
                    MCP_SERVERS_KEY,
                    f"Both inline {MCP_SERVERS_KEY} and {external_location} exist; "
                    f"inline definition takes precedence ({ignored} external entries ignored)",
                )
            )
        findings.extend(_validate_entries(inline, MCP_SERVERS_KEY))
        return findings

    if external_servers is not None:
        findings.extend(_validate_entries(external_servers, f"{external_location}:{MCP_SERVERS_KEY}"))

    if isinstance(inline, str):
        findings.extend(_check_reference(bundle_path, inline, external_path, external_location))
    elif inline is not None and not isinstance(inline, dict):
        findings.append(
            error(
                FindingCode.INVALID_FIELD_TYPE,
                MCP_SERVERS_KEY,
                f"Expected object or path string, got {json_type_name(inline)}",
            )
        )

    return findings


def _check_reference(
    bundle_path: Path, reference: str, external_path: Path, external_location: str
) -> list[Finding]:
    referenced = bundle_path / reference.removeprefix("./")

    if not external_path.is_file() and not referenced.is_file():
        return [
            error(
                FindingCode.PATH_NOT_FOUND,
                MCP_SERVERS_KEY,
                f"References {reference!r} but the file does not exist",
            )
        ]

    if referenced.resolve() != external_path.resolve():
        return [
            warning(
                FindingCode.CONNECTOR_REFERENCE_MISMATCH,
                MCP_SERVERS_KEY,
                f"References {reference!r} but connector file is {external_location}",
            )
        ]

    return []


def parse_env_assignment(assignment: str) -> tuple[str, str]:
    """Parse ``NAME=value`` into a pair.

    A bare ``NAME`` becomes ``NAME=${NAME}``, passing the variable through
    from the host environment.

    Raises:
        ValueError: If NAME is not a valid environment variable name
    """
    name, sep, value = assignment.partition("=")
    name = name.strip()
    if not ENV_VAR_PATTERN.match(name):
        raise ValueError(f"Invalid environment variable name: {name!r}")
    if not sep:
        value = f"${{{name}}}"
    return name, value.strip()


def build_stdio_entry(
    command: str,
    args: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Build a validated stdio server entry.

    Raises:
        ValueError: If command is empty
    """
    try:
        model = StdioServerConfig(
            command=command,
            args=list(args) if args else None,
            env=dict(env) if env else None,
        )
    except ValidationError as e:
        raise ValueError(f"Invalid stdio server: {e}") from e
    return model.model_dump(exclude_none=True)


def build_http_entry(
    url: str,
    token_var: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Build a validated http server entry.

    ``token_var`` adds ``Authorization: Bearer ${TOKEN_VAR}`` so the secret
    stays in the environment rather than in the bundle.

    Raises:
        ValueError: If url is empty or token_var is not a valid variable name
    """
    merged_headers = dict(headers or {})
    if token_var:
        if not ENV_VAR_PATTERN.match(token_var):
            raise ValueError(f"Invalid environment variable name: {token_var!r}")
        merged_headers["Authorization"] = f"Bearer ${{{token_var}}}"

    try:
        model = HttpServerConfig(url=url, headers=merged_headers or None)
    except ValidationError as e:
        raise ValueError(f"Invalid http server: {e}") from e
    return model.model_dump(exclude_none=True)


def existing_storage(
    bundle_path: Path,
    manifest: Mapping[str, Any],
    config: BundlesmithConfig,
) -> ConnectorStorage | None:
    """Storage a bundle already uses for MCP servers, if any.

    A non-empty inline mapping wins, then the external file, then an
    empty inline mapping.
    """
    inline = manifest.get(MCP_SERVERS_KEY)
    if isinstance(inline, dict) and inline:
        return "inline"
    if config.layout.connector_path(bundle_path).is_file():
        return "external"
    if isinstance(inline, dict):
        return "inline"
    return None


def resolve_storage(
    bundle_path: Path,
    manifest: Mapping[str, Any],
    config: BundlesmithConfig,
    requested: ConnectorStorage | None = None,
) -> ConnectorStorage:
    """Decide where a new entry goes.

    Existing storage always wins over the request. Only a bundle with no
    connector storage yet honors ``requested``, falling back to the
    configured default.
    """
    existing = existing_storage(bundle_path, manifest, config)
    if existing is not None:
        if requested and requested != existing:
            logger.warning(f"Bundle already uses {existing} MCP storage; ignoring request for {requested}")
        return existing
    return requested or config.scaffold.connector_storage


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging one server entry into a bundle."""

    storage: ConnectorStorage
    path: Path
    replaced: bool
    manifest_updated: bool = False


def merge_entry(
    bundle_path: Path,
    name: str,
    entry: Mapping[str, Any],
    config: BundlesmithConfig,
    storage: ConnectorStorage | None = None,
) -> MergeResult:
    """Upsert a server entry into the bundle's connector storage.

    Re-adding a server with the same name replaces the previous entry.
    Every write is atomic. When the external file is used the manifest's
    ``mcpServers`` is pointed at it, unless the manifest already holds an
    inline mapping.

    Raises:
        BundleNotFoundError: If the bundle or its manifest is missing
        MalformedDocumentError: If existing storage cannot be parsed
    """
    manifest_path = require_manifest(bundle_path, config)
    manifest = load_json_object(manifest_path)
    target = resolve_storage(bundle_path, manifest, config, storage)

    if target == "external":
        path = config.layout.connector_path(bundle_path)
        document = load_json_object(path) if path.is_file() else connector_file_template()
        servers = document.setdefault(MCP_SERVERS_KEY, {})
        if not isinstance(servers, dict):
            raise MalformedDocumentError(f"'{MCP_SERVERS_KEY}' must be an object", path)

        replaced = name in servers
        servers[name] = dict(entry)
        write_json_atomic(path, document)

        manifest_updated = False
        reference = config.layout.connector_reference
        current = manifest.get(MCP_SERVERS_KEY)
        if not isinstance(current, dict) and current != reference:
            manifest[MCP_SERVERS_KEY] = reference
            write_json_atomic(manifest_path, manifest)
            manifest_updated = True

        logger.info(f"{'Replaced' if replaced else 'Added'} MCP server {name} in {path}")
        return MergeResult("external", path, replaced, manifest_updated)

    servers = manifest.get(MCP_SERVERS_KEY)
    if not isinstance(servers, dict):
        if servers is not None:
            logger.warning(f"Replacing {MCP_SERVERS_KEY}={servers!r} with an inline mapping")
        servers = manifest[MCP_SERVERS_KEY] = {}

    replaced = name in servers
    servers[name] = dict(entry)
    write_json_atomic(manifest_path, manifest)

    logger.info(f"{'Replaced' if replaced else 'Added'} MCP server {name} inline in {manifest_path}")
    return MergeResult("inline", manifest_path, replaced, manifest_updated=True)


def referenced_env_vars(entry: Mapping[str, Any]) -> list[str]:
    """Names of ``${VAR}`` interpolations in an entry's string values, in order."""
    names: list[str] = []
    values: list[Any] = [entry.get("command"), entry.get("url"), *(entry.get("args") or [])]
    for key in ("env", "headers"):
        mapping = entry.get(key)
        if isinstance(mapping, dict):
            values.extend(mapping.values())

    for value in values:
        if not isinstance(value, str):
            continue
        for name in INTERPOLATION_PATTERN.findall(value):
            if name not in names:
                names.append(name)
    return names
