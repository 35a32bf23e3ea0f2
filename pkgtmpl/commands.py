"""Command executors behind the CLI.

Every executor returns a ``CommandResult`` and never raises: errors are
converted into a failed result carrying a readable message.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from pkgtmpl.config import ConfigStore, format_config, resolve_options, update_config
from pkgtmpl.errors import (
    InvalidOptionFormatError,
    PackageGenerationError,
    PkgTmplError,
    PluginNotFoundError,
    TemplateGenerationError,
)
from pkgtmpl.generator import create_package
from pkgtmpl.models import CommandResult, PluginDetails
from pkgtmpl.options import parse_plugin_option_value
from pkgtmpl.registry import PluginRegistry, registry as default_registry
from pkgtmpl.template_manager import SUPPORTED_SHELLS, generate_completion, generate_mise_config

console = Console()
logger = logging.getLogger(__name__)


def handle_error(error: Exception) -> CommandResult:
    """Convert an exception into a failed ``CommandResult``."""
    if isinstance(error, PackageGenerationError):
        return CommandResult(success=False, message=f"Package generation failed: {error}")
    if isinstance(error, InvalidOptionFormatError):
        return CommandResult(success=False, message=str(error))
    if isinstance(error, PkgTmplError):
        return CommandResult(success=False, message=f"Error: {error}")
    return CommandResult(
        success=False, message=f"Unexpected error: {type(error).__name__}: {error}"
    )


# ============================================================================
# create
# ============================================================================


def show_dry_run_plan(
    package_name: str,
    merged_options: Mapping[str, Any],
    plugin_options: Mapping[str, Mapping[str, Any]],
) -> CommandResult:
    """Print what ``create`` would do without writing anything."""
    console.print("[bold]Dry-run mode:[/bold] showing execution plan without creating files\n")
    console.print(f"[bold]Package name:[/bold] {package_name}\n")

    table = Table(title="Merged options")
    table.add_column("Option", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for key, value in sorted(merged_options.items()):
        table.add_row(key, escape(repr(value)))
    console.print(table)

    if plugin_options:
        table = Table(title="Plugin options")
        table.add_column("Plugin", style="cyan", no_wrap=True)
        table.add_column("Option", style="yellow")
        table.add_column("Value", style="green")
        for plugin_name, options in sorted(plugin_options.items()):
            if not options:
                table.add_row(plugin_name, "-", "-")
            for key, value in sorted(options.items()):
                table.add_row(plugin_name, key, escape(repr(value)))
        console.print(table)

    return CommandResult(success=True, message="Dry-run completed")


def execute_create(
    args: Mapping[str, Any],
    store: Optional[ConfigStore] = None,
    registry: Optional[PluginRegistry] = None,
) -> CommandResult:
    """Create a package from CLI arguments merged with the stored configuration.

    Args:
        args: Parsed CLI arguments. ``None`` marks an option that was not
            supplied; ``--<Plugin>`` keys hold lists of ``KEY=VALUE`` tokens.
        store: Configuration store (defaults to the user's configuration)
        registry: Plugin registry (defaults to the global one)
    """
    try:
        store = store or ConfigStore()
        config = store.load()

        cli_args = {key: value for key, value in args.items() if key not in ("dry_run",)}
        merged_options, plugin_options = resolve_options(config, cli_args)

        package_name = merged_options.pop("package_name", None)
        if not package_name:
            return CommandResult(success=False, message="Package name is required")

        if args.get("dry_run"):
            return show_dry_run_plan(package_name, merged_options, plugin_options)

        output_dir = merged_options.get("output_dir") or Path.cwd()
        package_dir = create_package(
            package_name, merged_options, plugin_options, output_dir, registry=registry
        )

        if merged_options.get("with_mise", True):
            try:
                generate_mise_config(package_dir, merged_options)
            except TemplateGenerationError as e:
                logger.warning("Failed to generate mise config: %s", e)

        return CommandResult(
            success=True, message=f"Package {package_name} created successfully at {package_dir}"
        )
    except Exception as e:
        return handle_error(e)


# ============================================================================
# config
# ============================================================================


def parse_config_values(tokens: Iterable[str]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` tokens of ``config set`` into typed values."""
    values = {}
    for token in tokens:
        key, value = parse_plugin_option_value(token)
        values[key] = value
    return values


def execute_config(
    subcommand: str = "show",
    values: Optional[Mapping[str, Any]] = None,
    store: Optional[ConfigStore] = None,
) -> CommandResult:
    """Show the stored configuration or update it.

    Args:
        subcommand: ``show`` or ``set``
        values: Keys to set, plain or in ``section.option`` dot notation
        store: Configuration store (defaults to the user's configuration)
    """
    try:
        store = store or ConfigStore()

        if subcommand == "show":
            config = store.load()
            console.print(f"[dim]# {store.config_path}[/dim]")
            console.print(Syntax(format_config(config), "yaml", background_color="default"))
            return CommandResult(success=True)

        if subcommand == "set":
            if not values:
                return CommandResult(success=False, message="No configuration values given")
            config = store.load()
            store.save(update_config(config, values))
            return CommandResult(success=True, message="Configuration updated successfully")

        return CommandResult(success=False, message=f"Unknown config subcommand: {subcommand}")
    except Exception as e:
        return CommandResult(
            success=False, message=f"Error executing config command: {handle_error(e).message}"
        )


# ============================================================================
# plugin-info
# ============================================================================


def list_all_plugins(registry: PluginRegistry) -> None:
    """Print a table of every available plugin."""
    descriptors = registry.discover()
    if not descriptors:
        console.print("[red]No plugins available.[/red]")
        return

    table = Table(title="Available Plugins")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Flag", style="green")
    table.add_column("Usage", style="magenta")
    table.add_column("Description")

    for descriptor in descriptors:
        usage = "flag" if descriptor.argumentless else "KEY=VALUE ..."
        description = (descriptor.plugin_type.__doc__ or "").strip().splitlines()
        table.add_row(
            descriptor.name, descriptor.flag, usage, escape(description[0]) if description else ""
        )

    console.print(table)
    console.print(f"\nTotal: {len(descriptors)} plugins")


def show_plugin_details(details: PluginDetails) -> None:
    """Print the fields, types and defaults of one plugin."""
    console.print(f"[bold cyan]Plugin: {details.name}[/bold cyan]\n")

    if details.description:
        console.print(f"[bold]Description:[/bold] {details.description}\n")

    if not details.fields:
        console.print("This plugin has no configurable fields.")
        return

    table = Table(title="Fields")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Default", style="green")

    for field in details.fields:
        table.add_row(field.name, escape(field.type), escape(repr(field.default)))

    console.print(table)


def execute_plugin_info(
    plugin_name: Optional[str] = None, registry: Optional[PluginRegistry] = None
) -> CommandResult:
    """List all plugins, or describe ``plugin_name``."""
    registry = registry or default_registry
    try:
        if plugin_name is None:
            list_all_plugins(registry)
        else:
            show_plugin_details(registry.describe(plugin_name))
        return CommandResult(success=True)
    except PluginNotFoundError as e:
        return CommandResult(
            success=False,
            message=(
                f"Plugin '{e.plugin_name}' not found. "
                f"Available plugins: {', '.join(e.available_plugins)}"
            ),
        )
    except Exception as e:
        return CommandResult(
            success=False,
            message=f"Error executing plugin-info command: {handle_error(e).message}",
        )


# ============================================================================
# completion
# ============================================================================


def execute_completion(
    shell: str = "fish", registry: Optional[PluginRegistry] = None
) -> CommandResult:
    """Print the completion script for ``shell``."""
    registry = registry or default_registry
    try:
        if shell not in SUPPORTED_SHELLS:
            return CommandResult(
                success=False,
                message=f"Unsupported shell: {shell}. Supported: {', '.join(SUPPORTED_SHELLS)}",
            )

        descriptors = registry.discover()
        names: List[str] = [descriptor.name for descriptor in descriptors]
        argumentless = [descriptor.name for descriptor in descriptors if descriptor.argumentless]

        script = generate_completion(shell, names, argumentless)
        # Completion scripts must reach stdout verbatim
        console.print(script, markup=False, emoji=False, highlight=False, soft_wrap=True, end="")
        return CommandResult(success=True)
    except TemplateGenerationError as e:
        return CommandResult(
            success=False, message=f"Failed to generate completion script: {e.message}"
        )
    except Exception as e:
        return CommandResult(
            success=False,
            message=f"Error executing completion command: {handle_error(e).message}",
        )
