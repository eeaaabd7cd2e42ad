"""Tests for the create-bundle, add-skill-to-bundle and validate-bundle commands."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from bundlesmith.cli import cli
from bundlesmith.cli.bundles import create_bundle_cmd, validate_bundle_cmd
from conftest import read_json, write_json

pytestmark = pytest.mark.integration


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def create(runner: CliRunner, tmp_path: Path, *extra: str, name: str = "demo"):
    return runner.invoke(cli, ["create-bundle", name, "--dir", str(tmp_path), *extra])


class TestGroup:
    """Tests for the top-level command group."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("create-bundle", "add-skill-to-bundle", "add-mcp-to-bundle", "validate-bundle"):
            assert command in result.output

    def test_group_config_applies(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("scaffold:\n  default_version: 0.2.0\n")

        result = runner.invoke(
            cli, ["--config", str(config_file), "create-bundle", "demo", "--dir", str(tmp_path)]
        )

        assert result.exit_code == 0, result.output
        assert read_json(tmp_path / "demo" / ".manifest" / "bundle.json")["version"] == "0.2.0"

    def test_command_config_applies(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("scaffold:\n  default_version: 0.3.0\n")

        result = create(runner, tmp_path, "--config", str(config_file))

        assert result.exit_code == 0, result.output
        assert read_json(tmp_path / "demo" / ".manifest" / "bundle.json")["version"] == "0.3.0"

    def test_configured_log_level(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  level: info\n")

        result = runner.invoke(cli, ["--config", str(config_file), "validate-bundle", str(tmp_path)])

        assert result.exit_code == 1
        assert logging.getLogger("bundlesmith").level == logging.INFO

    @pytest.mark.parametrize("position", ["group", "command"])
    def test_verbose_overrides_configured_level(
        self, runner: CliRunner, tmp_path: Path, position: str
    ) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  level: error\n")
        command = ["validate-bundle", str(tmp_path)]
        if position == "group":
            args = ["--config", str(config_file), "-v", *command]
        else:
            args = ["--config", str(config_file), *command, "--verbose"]

        runner.invoke(cli, args)

        assert logging.getLogger("bundlesmith").level == logging.DEBUG

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  level: loud\n")

        result = runner.invoke(cli, ["--config", str(config_file), "validate-bundle", str(tmp_path)])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output


class TestCreateBundleCommand:
    """Tests for create-bundle."""

    def test_creates_bundle(self, runner: CliRunner, tmp_path: Path) -> None:
        result = create(runner, tmp_path)

        assert result.exit_code == 0, result.output
        assert "✓ Created bundle 'demo'" in result.output
        assert "Next steps:" in result.output
        assert (tmp_path / "demo" / ".manifest" / "bundle.json").is_file()
        assert not (tmp_path / "demo" / "agents").exists()

    def test_with_all(self, runner: CliRunner, tmp_path: Path) -> None:
        result = create(runner, tmp_path, "--with-all")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "demo" / "hooks").is_dir()
        assert (tmp_path / "demo" / "mcp").is_dir()

    def test_missing_name(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["create-bundle"])

        assert result.exit_code == 1
        assert "Bundle name is required" in result.output
        assert "Usage: create-bundle" in result.output

    def test_invalid_name(self, runner: CliRunner, tmp_path: Path) -> None:
        result = create(runner, tmp_path, name="My_Bundle")

        assert result.exit_code == 1
        assert "Invalid bundle name" in result.output
        assert list(tmp_path.iterdir()) == []

    def test_already_exists(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)
        result = create(runner, tmp_path)

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_standalone_command(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(create_bundle_cmd, ["demo", "--dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "demo" / "skills").is_dir()

    def test_default_dir_is_cwd(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["create-bundle", "demo"])

            assert result.exit_code == 0, result.output
            assert Path("demo/.manifest/bundle.json").is_file()


class TestAddSkillCommand:
    """Tests for add-skill-to-bundle."""

    def test_adds_skill(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)
        bundle = tmp_path / "demo"

        result = runner.invoke(cli, ["add-skill-to-bundle", str(bundle), "greeter"])

        assert result.exit_code == 0, result.output
        assert "✓ Added skill 'greeter'" in result.output
        assert '"./skills/greeter"' in result.output
        assert (bundle / "skills" / "greeter" / "SKILL.md").is_file()
        assert read_json(bundle / ".manifest" / "bundle.json")["skills"] == []

    def test_register(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)
        bundle = tmp_path / "demo"

        result = runner.invoke(cli, ["add-skill-to-bundle", str(bundle), "greeter", "--register"])

        assert result.exit_code == 0, result.output
        assert "✓ Registered ./skills/greeter" in result.output
        assert read_json(bundle / ".manifest" / "bundle.json")["skills"] == ["./skills/greeter"]

    def test_missing_arguments(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["add-skill-to-bundle", str(tmp_path)])

        assert result.exit_code == 1
        assert "Bundle path and skill name are required" in result.output

    def test_missing_bundle(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["add-skill-to-bundle", str(tmp_path / "nope"), "greeter"])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_existing_skill(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)
        bundle = str(tmp_path / "demo")
        runner.invoke(cli, ["add-skill-to-bundle", bundle, "greeter"])

        result = runner.invoke(cli, ["add-skill-to-bundle", bundle, "greeter"])

        assert result.exit_code == 1
        assert "already exists" in result.output


class TestValidateBundleCommand:
    """Tests for validate-bundle."""

    def test_fresh_bundle_is_valid_with_warnings(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)

        result = runner.invoke(cli, ["validate-bundle", str(tmp_path / "demo")])

        assert result.exit_code == 0, result.output
        assert "Validating bundle:" in result.output
        assert result.output.count("WARNING [PlaceholderPresent]") == 3
        assert "Errors: 0" in result.output
        assert "Warnings: 3" in result.output
        assert "Bundle is valid but has warnings" in result.output

    def test_json_output(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)

        result = runner.invoke(validate_bundle_cmd, [str(tmp_path / "demo"), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["errors"] == []
        assert [w["location"] for w in data["warnings"]] == ["description", "author.name", "author.email"]

    def test_invalid_bundle_exits_1(self, runner: CliRunner, tmp_path: Path) -> None:
        create(runner, tmp_path)
        manifest_path = tmp_path / "demo" / ".manifest" / "bundle.json"
        manifest = read_json(manifest_path)
        manifest["skills"] = ["./skills/missing"]
        write_json(manifest_path, manifest)

        result = runner.invoke(cli, ["validate-bundle", str(tmp_path / "demo")])

        assert result.exit_code == 1
        assert "ERROR [ReferencedSkillMissing] skills/missing" in result.output
        assert "Bundle validation failed" in result.output

    def test_missing_bundle_exits_1(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["validate-bundle", str(tmp_path / "nope")])

        assert result.exit_code == 1
        assert "[PathNotFound]" in result.output

    def test_missing_argument(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["validate-bundle"])

        assert result.exit_code == 1
        assert "Bundle path is required" in result.output


class TestEndToEnd:
    """Full workflow through the command group."""

    def test_create_skill_connector_validate(self, runner: CliRunner, tmp_path: Path) -> None:
        assert create(runner, tmp_path).exit_code == 0
        bundle = str(tmp_path / "demo")

        result = runner.invoke(cli, ["add-skill-to-bundle", bundle, "greeter", "--register"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(
            cli,
            [
                "add-mcp-to-bundle", bundle, "db", "stdio",
                "--command", "npx", "--arg", "server.js", "--env", "API_KEY",
            ],
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["validate-bundle", bundle, "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["errors"] == []
        assert {w["code"] for w in data["warnings"]} == {"PlaceholderPresent"}
        assert "skills/greeter/SKILL.md:description" in [w["location"] for w in data["warnings"]]
