"""Exceptions raised by fail-fast bundle operations.

Scaffolding and merging stop at the first blocking condition and raise one
of these. Validation does not raise for bundle content problems; it reports
findings instead (see ``bundlesmith.findings``).
"""

from __future__ import annotations

from pathlib import Path


class BundleError(Exception):
    """Base class for bundle operation failures."""

    def __init__(self, message: str, path: str | Path | None = None):
        self.path = str(path) if path else None
        super().__init__(f"{message}" + (f": {path}" if path else ""))


class BundleExistsError(BundleError, FileExistsError):
    """Target bundle directory already exists."""


class SkillExistsError(BundleError, FileExistsError):
    """Target skill directory already exists."""


class BundleNotFoundError(BundleError, FileNotFoundError):
    """Bundle directory or its manifest is missing."""


class MalformedDocumentError(BundleError):
    """A manifest or connector file could not be parsed."""
