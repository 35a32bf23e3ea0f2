"""pkgtmpl - Python package generator driven by plugins and stored defaults."""

__version__ = "0.1.0"

from .config import ConfigStore, merge_config, resolve_options, update_config
from .errors import (
    ConfigurationError,
    ConfigurationParseError,
    InvalidOptionFormatError,
    PackageGenerationError,
    PkgTmplError,
    PluginConstructionError,
    PluginNotFoundError,
    TemplateGenerationError,
)
from .generator import create_package
from .models import CommandResult, PluginDescriptor, PluginDetails, PluginField
from .options import infer_value, parse_plugin_option_value, parse_plugin_options
from .plugins import Plugin
from .registry import PluginRegistry, registry

__all__ = [
    "CommandResult",
    "ConfigStore",
    "ConfigurationError",
    "ConfigurationParseError",
    "InvalidOptionFormatError",
    "PackageGenerationError",
    "PkgTmplError",
    "Plugin",
    "PluginConstructionError",
    "PluginDescriptor",
    "PluginDetails",
    "PluginField",
    "PluginNotFoundError",
    "PluginRegistry",
    "TemplateGenerationError",
    "create_package",
    "infer_value",
    "merge_config",
    "parse_plugin_option_value",
    "parse_plugin_options",
    "registry",
    "resolve_options",
    "update_config",
]
