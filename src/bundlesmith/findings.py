"""Validation findings and the report that accumulates them.

Validation is fail-accumulate: every check runs and appends findings to a
ValidationReport, and the caller decides what to do with the full list.
Only errors affect the exit code; warnings never block distribution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class FindingCode(str, Enum):
    """Stable, greppable finding identifiers."""

    PATH_NOT_FOUND = "PathNotFound"
    MALFORMED_DOCUMENT = "MalformedDocument"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_FIELD_TYPE = "InvalidFieldType"
    PLACEHOLDER_PRESENT = "PlaceholderPresent"
    NO_CAPABILITIES = "NoCapabilities"
    REFERENCED_SKILL_MISSING = "ReferencedSkillMissing"
    SKILL_DESCRIPTOR_MALFORMED = "SkillDescriptorMalformed"
    TRANSPORT_FIELD_MISSING = "TransportFieldMissing"
    EXTRANEOUS_TRANSPORT_FIELD = "ExtraneousTransportField"
    UNKNOWN_TRANSPORT = "UnknownTransport"
    CONFLICTING_CONNECTOR_STORAGE = "ConflictingConnectorStorage"
    CONNECTOR_REFERENCE_MISMATCH = "ConnectorReferenceMismatch"


@dataclass(frozen=True)
class Finding:
    """A single problem found while validating a bundle.

    Attributes:
        severity: Whether the finding blocks distribution
        code: Taxonomy identifier
        location: Field path or file path the finding refers to
        message: Human-readable explanation
    """

    severity: Severity
    code: FindingCode
    location: str
    message: str

    def render(self) -> str:
        prefix = "ERROR" if self.severity is Severity.ERROR else "WARNING"
        return f"{prefix} [{self.code.value}] {self.location}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {
            "severity": self.severity.value,
            "code": self.code.value,
            "location": self.location,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Accumulated findings for one bundle."""

    bundle_path: str = ""
    errors: list[Finding] = field(default_factory=list)
    warnings: list[Finding] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def exit_code(self) -> int:
        return 0 if self.valid else 1

    def add_error(self, code: FindingCode, location: str, message: str) -> None:
        self.errors.append(Finding(Severity.ERROR, code, location, message))

    def add_warning(self, code: FindingCode, location: str, message: str) -> None:
        self.warnings.append(Finding(Severity.WARNING, code, location, message))

    def extend(self, findings: list[Finding]) -> None:
        """Sort findings produced by a sub-validator into errors and warnings."""
        for finding in findings:
            if finding.severity is Severity.ERROR:
                self.errors.append(finding)
            else:
                self.warnings.append(finding)

    def merge(self, other: ValidationReport) -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def codes(self) -> list[FindingCode]:
        """All finding codes, errors first, in discovery order."""
        return [f.code for f in self.errors] + [f.code for f in self.warnings]

    def render(self) -> str:
        lines = [f.render() for f in self.errors]
        lines.extend(f.render() for f in self.warnings)
        lines.append("")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        if not self.valid:
            lines.append("Bundle validation failed")
        elif self.warnings:
            lines.append("Bundle is valid but has warnings")
        else:
            lines.append("Bundle is valid")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bundle": self.bundle_path,
            "valid": self.valid,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
        }


def error(code: FindingCode, location: str, message: str) -> Finding:
    return Finding(Severity.ERROR, code, location, message)


def warning(code: FindingCode, location: str, message: str) -> Finding:
    return Finding(Severity.WARNING, code, location, message)
