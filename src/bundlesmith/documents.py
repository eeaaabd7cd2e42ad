"""Reading and writing bundle documents.

JSON documents (manifest, connector file) are written atomically: the new
content goes to a temporary file in the same directory which then replaces
the original with ``os.replace``. A crash mid-write leaves the old file in
place, and readers never observe a half-written document.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

import yaml

from bundlesmith.errors import MalformedDocumentError

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"


def load_json_document(path: Path) -> Any:
    """Load and decode a JSON document.

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedDocumentError: If the content is not valid JSON
    """
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"Invalid JSON ({e})", path) from e
    except UnicodeDecodeError as e:
        raise MalformedDocumentError(f"File is not UTF-8 text ({e.reason})", path) from e


def load_json_object(path: Path) -> dict[str, Any]:
    """Load a JSON document whose top level must be an object."""
    data = load_json_document(path)
    if not isinstance(data, dict):
        raise MalformedDocumentError("Top level must be a JSON object", path)
    return data


def _target_mode(path: Path) -> int:
    """Permission bits the written file should carry.

    An existing file keeps its mode; a new one gets the umask default, as
    if created with ``open``. ``mkstemp`` alone would leave it 0600.
    """
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_json_atomic(path: Path, data: Any) -> None:
    """Write data as indented JSON, replacing path atomically.

    The file mode of an existing target is preserved.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    logger.debug(f"Wrote {path}")


def extract_front_matter(text: str) -> str | None:
    """Return the raw front-matter block of a Markdown document.

    The block must open on the first line with ``---`` and close with a
    later ``---`` line. Returns None if either delimiter is missing.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return None

    for idx in range(1, len(lines)):
        if lines[idx].strip() == FRONT_MATTER_DELIMITER:
            return "\n".join(lines[1:idx])

    return None


def parse_front_matter(text: str) -> dict[str, Any] | None:
    """Parse a Markdown document's YAML front matter.

    Returns:
        The front-matter mapping, or None when there is no delimited block
        or the block is not a YAML mapping.
    """
    block = extract_front_matter(text)
    if block is None:
        return None

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        logger.debug(f"Front matter is not valid YAML: {e}")
        return None

    if not isinstance(data, dict):
        return None
    return data
