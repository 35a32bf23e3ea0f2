"""Stored user defaults and the merge of defaults, config sections and CLI options."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from pkgtmpl.errors import ConfigurationParseError
from pkgtmpl.options import parse_plugin_options

logger = logging.getLogger(__name__)

APP_NAME = "pkgtmpl"
CONFIG_FILENAME = "config.yaml"
DEFAULT_SECTION = "default"

# Words of the ``config`` command that never become configuration keys
COMMAND_KEYS = ("show", "set")


def create_default_config() -> Dict[str, Any]:
    """Return the built-in configuration document."""
    return {
        DEFAULT_SECTION: {
            "author": "",
            "user": "",
            "mail": "",
            "mise_filename_base": ".mise",
            "with_mise": True,
        }
    }


def get_config_root() -> Path:
    """Get the configuration base directory: $XDG_CONFIG_HOME, else ~/.config."""
    if env_val := os.getenv("XDG_CONFIG_HOME"):
        return Path(env_val)
    return Path("~/.config").expanduser()


def format_config(config: Mapping[str, Any]) -> str:
    """Render a configuration document as YAML text with sorted keys."""
    return yaml.safe_dump(dict(config), sort_keys=True, default_flow_style=False)


class ConfigStore:
    """Loads and saves the stored configuration document.

    The base directory is resolved once, at construction. Passing
    ``config_root`` pins it; otherwise ``get_config_root()`` is used.
    Concurrent invocations writing the same file are not guarded against.
    """

    def __init__(self, config_root: Optional[Path] = None):
        self.config_root = Path(config_root) if config_root is not None else get_config_root()

    @property
    def config_path(self) -> Path:
        """Path of the configuration file; its directory is created if missing."""
        config_dir = self.config_root / APP_NAME
        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / CONFIG_FILENAME

    def load(self) -> Dict[str, Any]:
        """Load the configuration document.

        A missing file is created with the built-in defaults. A file that
        cannot be parsed is reported through logging and left untouched;
        the built-in defaults are returned instead.
        """
        config_path = self.config_path

        if not config_path.exists():
            config = create_default_config()
            self.save(config)
            logger.info("Created default configuration at %s", config_path)
            return config

        try:
            with config_path.open("rb") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            error = ConfigurationParseError.from_yaml_error(e, config_path)
            logger.error("%s", error)
            logger.warning("Falling back to the default configuration")
            return create_default_config()

        if config is None:
            config = {}

        if not isinstance(config, dict):
            error = ConfigurationParseError(
                f"Expected a mapping at the top level, got {type(config).__name__}",
                config_path,
                suggestions=["Put every setting under a top-level 'default:' section"],
            )
            logger.error("%s", error)
            logger.warning("Falling back to the default configuration")
            return create_default_config()

        if not isinstance(config.get(DEFAULT_SECTION), dict):
            config[DEFAULT_SECTION] = {}

        return config

    def save(self, config: Mapping[str, Any]) -> Path:
        """Write the document as YAML with sorted keys and return the path."""
        config_path = self.config_path
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(format_config(config))
        return config_path


def merge_config(config_defaults: Mapping[str, Any], cli_args: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge configuration defaults with CLI arguments.

    CLI values win. ``None`` marks an option that was not supplied and keeps
    the default. When both sides hold a mapping the two are merged
    recursively.
    """
    merged = copy.deepcopy(dict(config_defaults))

    for key, value in cli_args.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)
        elif value is not None:
            merged[key] = copy.deepcopy(value)

    return merged


def apply_dot_notation(config: Mapping[str, Any], key: str, value: Any) -> Dict[str, Any]:
    """Set ``key`` in the ``default`` section of a copy of ``config``.

    ``section.option`` addresses ``config["default"][section][option]``. Only
    the first dot is significant; ``a.b.c`` sets option ``b.c`` of section
    ``a``. A non-mapping value already stored under ``section`` is replaced
    by an empty mapping.
    """
    updated = copy.deepcopy(dict(config))
    if not isinstance(updated.get(DEFAULT_SECTION), dict):
        updated[DEFAULT_SECTION] = {}
    defaults = updated[DEFAULT_SECTION]

    if "." not in key:
        defaults[key] = value
        return updated

    section, option = key.split(".", 1)
    existing = defaults.get(section)
    if not isinstance(existing, dict):
        if existing is not None:
            logger.warning(
                "Replacing '%s' (%r) with a section to store '%s'", section, existing, key
            )
        defaults[section] = {}

    defaults[section][option] = value
    return updated


def update_config(existing_config: Mapping[str, Any], new_values: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply new values, plain or dotted, to the ``default`` section.

    Example:
        ```python
        existing = {"default": {"author": "Old"}}
        update_config(existing, {"author": "New", "Formatter.style": "ruff"})
        # Returns: {"default": {"author": "New", "Formatter": {"style": "ruff"}}}
        ```
    """
    updated = copy.deepcopy(dict(existing_config))
    if not isinstance(updated.get(DEFAULT_SECTION), dict):
        updated[DEFAULT_SECTION] = {}

    for key, value in new_values.items():
        if key in COMMAND_KEYS:
            continue
        updated = apply_dot_notation(updated, key, value)

    return updated


def is_plugin_section(key: str, value: Any) -> bool:
    """A capitalised key holding a mapping configures the plugin of that name."""
    return isinstance(value, dict) and key[:1].isupper()


def collect_plugin_options(
    merged_options: Mapping[str, Any],
    cli_plugin_options: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Dict[str, Any]]:
    """Fold plugin sections of the merged options into the CLI plugin options.

    For a plugin configured in both places the CLI value wins per key.
    """
    plugin_options = {name: dict(options) for name, options in cli_plugin_options.items()}

    for key, value in merged_options.items():
        if not is_plugin_section(key, value):
            continue
        section = copy.deepcopy(value)
        section.update(plugin_options.get(key, {}))
        plugin_options[key] = section

    return plugin_options


def resolve_options(
    config: Mapping[str, Any], cli_args: Mapping[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
    """Resolve general and plugin options for one ``create`` invocation.

    Returns:
        ``(general_options, plugin_options)``; general options follow the
        precedence CLI > stored config > built-in default.
    """
    builtin_defaults = create_default_config()[DEFAULT_SECTION]
    config_defaults = merge_config(builtin_defaults, config.get(DEFAULT_SECTION) or {})

    general_args = {
        key: value for key, value in cli_args.items() if not key.startswith("--")
    }
    merged_options = merge_config(config_defaults, general_args)

    cli_plugin_options = parse_plugin_options(cli_args)
    plugin_options = collect_plugin_options(merged_options, cli_plugin_options)

    return merged_options, plugin_options
