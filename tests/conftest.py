"""Pytest configuration and shared fixtures for bundlesmith tests."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from bundlesmith.config import BundlesmithConfig
from bundlesmith.scaffold import create_bundle

Manifest = dict[str, Any]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point BUNDLESMITH_HOME at an empty directory so user config never leaks in."""
    home = tmp_path_factory.mktemp("bundlesmith-home")
    monkeypatch.setenv("BUNDLESMITH_HOME", str(home))
    return home


@pytest.fixture
def config() -> BundlesmithConfig:
    """Create a default config for testing."""
    return BundlesmithConfig()


@pytest.fixture
def bundle(tmp_path: Path, config: BundlesmithConfig) -> Path:
    """A freshly scaffolded bundle named 'demo'."""
    return create_bundle("demo", tmp_path, config)


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


def complete_manifest(**overrides: Any) -> Manifest:
    """A manifest with every required field filled in."""
    manifest: Manifest = {
        "name": "demo",
        "version": "1.2.0",
        "description": "Demo bundle for tests",
        "author": {"name": "Ada Lovelace", "email": "ada@example.com"},
        "skills": [],
    }
    manifest.update(overrides)
    return manifest


def write_skill(bundle_path: Path, name: str, front_matter: str | None = None) -> Path:
    """Write skills/<name>/SKILL.md; front_matter=None writes a valid descriptor."""
    if front_matter is None:
        front_matter = f"---\nname: {name}\ndescription: Greets the user\nversion: 1.0.0\n---\n"
    skill_dir = bundle_path / "skills" / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(front_matter + "\n# Body\n")
    return skill_dir


@pytest.fixture
def make_bundle(tmp_path: Path, config: BundlesmithConfig) -> Callable[..., Path]:
    """Factory writing a bundle with the given manifest document."""

    def _make(manifest: Any = None, name: str = "demo") -> Path:
        bundle_path = tmp_path / name
        bundle_path.mkdir(exist_ok=True)
        (bundle_path / "skills").mkdir(exist_ok=True)
        document = complete_manifest() if manifest is None else manifest
        write_json(config.layout.manifest_path(bundle_path), document)
        return bundle_path

    return _make
