"""Tests for the command executors."""

import pytest

from pkgtmpl.commands import (
    execute_completion,
    execute_config,
    execute_create,
    execute_plugin_info,
    handle_error,
    parse_config_values,
)
from pkgtmpl.errors import (
    InvalidOptionFormatError,
    PackageGenerationError,
    PluginNotFoundError,
)


class TestHandleError:
    """Test conversion of exceptions into results."""

    def test_generation_error(self):
        """Test package generation failures."""
        result = handle_error(PackageGenerationError("disk full"))
        assert not result.success
        assert result.message == "Package generation failed: disk full"

    def test_invalid_option(self):
        """Test that the malformed token message is kept verbatim."""
        result = handle_error(InvalidOptionFormatError("oops"))
        assert result.message == "Invalid plugin option format: 'oops'. Expected 'key=value'"

    def test_known_error(self):
        """Test other pkgtmpl errors."""
        result = handle_error(PluginNotFoundError("X", ["Git"]))
        assert result.message.startswith("Error: Plugin 'X' not found")

    def test_unexpected_error(self):
        """Test errors from outside the package."""
        result = handle_error(KeyError("boom"))
        assert result.message == "Unexpected error: KeyError: 'boom'"


class TestExecuteCreate:
    """Test the create executor."""

    def test_creates_package(self, tmp_path, config_store):
        """Test creating a package with stored defaults."""
        config_store.save({"default": {"author": "Config Author", "with_mise": True}})
        args = {"package_name": "MyPkg", "output_dir": str(tmp_path), "author": None}

        result = execute_create(args, store=config_store)

        assert result.success, result.message
        package_dir = tmp_path / "MyPkg"
        assert "created successfully" in result.message
        assert "Config Author" in (package_dir / "pyproject.toml").read_text()
        assert (package_dir / ".mise.toml").is_file()

    def test_cli_overrides_config(self, tmp_path, config_store):
        """Test that CLI values win over stored ones."""
        config_store.save({"default": {"author": "Config Author"}})
        args = {"package_name": "pkg", "output_dir": str(tmp_path), "author": "CLI Author"}

        assert execute_create(args, store=config_store).success
        pyproject = (tmp_path / "pkg" / "pyproject.toml").read_text()
        assert "CLI Author" in pyproject
        assert "Config Author" not in pyproject

    def test_without_mise(self, tmp_path, config_store):
        """Test disabling the mise configuration."""
        args = {"package_name": "pkg", "output_dir": str(tmp_path), "with_mise": False}

        assert execute_create(args, store=config_store).success
        assert not (tmp_path / "pkg" / ".mise.toml").exists()

    def test_plugin_section_from_config(self, tmp_path, config_store):
        """Test that a stored plugin section configures and enables the plugin."""
        config_store.save({"default": {"Formatter": {"style": "yapf", "indent": 4}}})
        args = {"package_name": "pkg", "output_dir": str(tmp_path), "--Formatter": ["indent=2"]}

        assert execute_create(args, store=config_store).success
        assert "indent_width = 2" in (tmp_path / "pkg" / ".style.yapf").read_text()

    def test_dry_run_writes_nothing(self, tmp_path, config_store, capsys):
        """Test that a dry run only prints the plan."""
        args = {
            "package_name": "pkg",
            "output_dir": str(tmp_path),
            "dry_run": True,
            "--Docker": ["base_image=python:3.12"],
        }

        result = execute_create(args, store=config_store)

        assert result.success
        assert result.message == "Dry-run completed"
        assert not (tmp_path / "pkg").exists()
        output = capsys.readouterr().out
        assert "Dry-run mode" in output
        assert "Docker" in output

    def test_invalid_plugin_token(self, tmp_path, config_store):
        """Test that a malformed plugin option fails the command."""
        args = {"package_name": "pkg", "output_dir": str(tmp_path), "--Docker": ["base_image"]}

        result = execute_create(args, store=config_store)

        assert not result.success
        assert result.message == "Invalid plugin option format: 'base_image'. Expected 'key=value'"

    def test_missing_package_name(self, config_store):
        """Test that a package name is required."""
        result = execute_create({"package_name": None}, store=config_store)
        assert not result.success
        assert result.message == "Package name is required"

    def test_existing_directory(self, tmp_path, config_store):
        """Test that generation failures are reported."""
        (tmp_path / "pkg").mkdir()
        result = execute_create({"package_name": "pkg", "output_dir": str(tmp_path)}, store=config_store)

        assert not result.success
        assert result.message.startswith("Package generation failed:")

    def test_invalid_package_name(self, tmp_path, config_store):
        """Test that an invalid name fails the command instead of raising."""
        result = execute_create({"package_name": "my-pkg", "output_dir": str(tmp_path)}, store=config_store)

        assert not result.success
        assert "must be a valid Python identifier" in result.message

    def test_unknown_plugin(self, tmp_path, config_store):
        """Test a plugin name that does not exist."""
        args = {"package_name": "pkg", "output_dir": str(tmp_path), "--Nope": ["a=1"]}

        result = execute_create(args, store=config_store)

        assert not result.success
        assert "Plugin 'Nope' not found" in result.message


class TestExecuteConfig:
    """Test the config executor."""

    def test_parse_config_values(self):
        """Test that config tokens are typed like plugin options."""
        assert parse_config_values(["with_mise=false", "Formatter.indent=2"]) == {
            "with_mise": False,
            "Formatter.indent": 2,
        }

    def test_parse_config_values_invalid(self):
        """Test that a token without '=' is rejected."""
        with pytest.raises(InvalidOptionFormatError):
            parse_config_values(["author"])

    def test_set_and_show(self, config_store, capsys):
        """Test storing values and showing them."""
        result = execute_config(
            "set", {"author": "Jane", "Formatter.style": "ruff"}, store=config_store
        )
        assert result.success
        assert result.message == "Configuration updated successfully"

        stored = config_store.load()
        assert stored["default"]["author"] == "Jane"
        assert stored["default"]["Formatter"] == {"style": "ruff"}
        assert stored["default"]["with_mise"] is True

        assert execute_config("show", store=config_store).success
        output = capsys.readouterr().out
        assert "author" in output
        assert "Jane" in output

    def test_set_without_values(self, config_store):
        """Test that set needs at least one value."""
        result = execute_config("set", {}, store=config_store)
        assert not result.success
        assert result.message == "No configuration values given"

    def test_unknown_subcommand(self, config_store):
        """Test an unknown config subcommand."""
        result = execute_config("reset", store=config_store)
        assert not result.success
        assert "Unknown config subcommand: reset" in result.message


class TestExecutePluginInfo:
    """Test the plugin-info executor."""

    def test_list(self, fake_registry, capsys):
        """Test listing every plugin."""
        result = execute_plugin_info(registry=fake_registry)

        assert result.success
        output = capsys.readouterr().out
        for name in ("Badges", "Deploy", "Lint"):
            assert name in output
        assert "Total: 3 plugins" in output

    def test_details(self, fake_registry, capsys):
        """Test describing one plugin."""
        result = execute_plugin_info("Deploy", registry=fake_registry)

        assert result.success
        output = capsys.readouterr().out
        assert "Plugin: Deploy" in output
        assert "target" in output
        assert "region" in output

    def test_not_found(self, fake_registry):
        """Test that a missing plugin lists the available ones."""
        result = execute_plugin_info("Nope", registry=fake_registry)

        assert not result.success
        assert result.message == "Plugin 'Nope' not found. Available plugins: Badges, Deploy, Lint"

    def test_construction_failure(self, broken_registry):
        """Test that a broken plugin fails the listing."""
        result = execute_plugin_info(registry=broken_registry)

        assert not result.success
        assert "Broken" in result.message


class TestExecuteCompletion:
    """Test the completion executor."""

    def test_fish(self, fake_registry, capsys):
        """Test the fish script on stdout."""
        result = execute_completion("fish", registry=fake_registry)

        assert result.success
        output = capsys.readouterr().out
        assert "complete -c pkgtmpl" in output
        assert '-l deploy -r -d "Options for Deploy plugin (KEY=VALUE)"' in output
        assert '-l lint -d "Enable Lint plugin"' in output

    def test_unsupported_shell(self, fake_registry):
        """Test that unknown shells are rejected."""
        result = execute_completion("powershell", registry=fake_registry)

        assert not result.success
        assert result.message.startswith("Unsupported shell: powershell")
