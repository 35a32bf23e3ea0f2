"""pkgtmpl command line interface."""

import logging
import sys
from typing import Any, Dict, Optional, Tuple

import click
from click.core import ParameterSource
from rich.markup import escape

from pkgtmpl import commands
from pkgtmpl.commands import console
from pkgtmpl.errors import PkgTmplError
from pkgtmpl.models import CommandResult
from pkgtmpl.registry import PluginRegistry, registry as default_registry

logger = logging.getLogger(__name__)

PLUGIN_DEST_PREFIX = "plugin_"


def finish(result: CommandResult) -> None:
    """Report a command result and exit non-zero on failure."""
    if result.success:
        if result.message:
            console.print(f"✅ {escape(result.message)}")
        return

    console.print(f"[red]{escape(result.message or 'Command failed')}[/red]")
    sys.exit(1)


def supplied(ctx: click.Context, name: str, value: Any) -> Any:
    """Return ``value``, or ``None`` when the option was left at its default."""
    if ctx.get_parameter_source(name) in (ParameterSource.DEFAULT, None):
        return None
    return value


class KeyValueOption(click.Option):
    """Repeatable option that also takes several ``KEY=VALUE`` tokens per use.

    ``--docker a=1 b=2`` and ``--docker a=1 --docker b=2`` give the same
    value. Tokens are collected until the next option or the next argument
    without ``=``, so positional arguments may still follow.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        kwargs["multiple"] = True
        super().__init__(*args, **kwargs)

    def add_to_parser(self, parser: Any, ctx: click.Context) -> None:
        super().add_to_parser(parser, ctx)

        for name in self.opts:
            parser_option = parser._long_opt.get(name) or parser._short_opt.get(name)
            if parser_option is None:
                continue

            process = parser_option.process

            def process_tokens(value: Any, state: Any, process=process) -> None:
                process(value, state)
                while state.rargs and self._takes(state.rargs[0]):
                    process(state.rargs.pop(0), state)

            parser_option.process = process_tokens
            break

    @staticmethod
    def _takes(token: str) -> bool:
        return "=" in token and not token.startswith("-")


def add_dynamic_plugin_options(
    command: click.Command, registry: PluginRegistry
) -> Dict[str, Tuple[str, bool]]:
    """Add one option per plugin to ``command``.

    Argumentless plugins become ``--<name>`` flags; the others take one or
    more ``KEY=VALUE`` tokens.

    Returns:
        ``{parameter name: (plugin name, argumentless)}``
    """
    plugin_params: Dict[str, Tuple[str, bool]] = {}
    existing = {opt for param in command.params for opt in getattr(param, "opts", [])}

    for descriptor in registry.discover():
        if descriptor.flag in existing:
            logger.warning("Plugin %s clashes with option %s; skipped", descriptor.name, descriptor.flag)
            continue

        dest = f"{PLUGIN_DEST_PREFIX}{descriptor.name.lower()}"
        if descriptor.argumentless:
            option = click.Option(
                [descriptor.flag, dest],
                is_flag=True,
                default=False,
                help=f"Enable {descriptor.name} plugin",
            )
        else:
            option = KeyValueOption(
                [descriptor.flag, dest],
                metavar="KEY=VALUE...",
                help=f"Options for {descriptor.name} plugin",
            )

        command.params.append(option)
        plugin_params[dest] = (descriptor.name, descriptor.argumentless)

    return plugin_params


def build_cli(registry: Optional[PluginRegistry] = None) -> click.Group:
    """Build the command group, with plugin options taken from ``registry``."""
    registry = registry or default_registry

    @click.group()
    @click.version_option(package_name="pkgtmpl")
    @click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
    def cli(verbose: bool):
        """pkgtmpl - Python package template generator.

        Create new Python packages from plugins, with personal defaults
        stored in a configuration file.
        """
        if verbose:
            logging.basicConfig(level=logging.INFO)

    @cli.command()
    @click.argument("package_name")
    @click.option("--author", default=None, help="Package author name")
    @click.option("--user", default=None, help="GitHub username")
    @click.option("--mail", default=None, help="Author e-mail address")
    @click.option("--python-version", default=None, help="Minimum supported Python version")
    @click.option("--output-dir", "-o", default=None, help="Directory in which to create the package")
    @click.option(
        "--with-mise/--without-mise",
        default=True,
        help="Generate a mise configuration file (default from config)",
    )
    @click.option("--dry-run", is_flag=True, help="Show what would be done without writing files")
    @click.pass_context
    def create(ctx: click.Context, package_name: str, dry_run: bool, **options: Any):
        """Create a new Python package.

        Example:
            pkgtmpl create MyPackage --author "Jane Doe" --formatter --docker base_image=python:3.12-slim
        """
        args: Dict[str, Any] = {"package_name": package_name, "dry_run": dry_run}

        for name, value in options.items():
            if name in plugin_params:
                plugin_name, argumentless = plugin_params[name]
                value = supplied(ctx, name, value)
                if argumentless:
                    args[plugin_name.lower()] = True if value else None
                else:
                    args[f"--{plugin_name}"] = list(value) if value else None
            else:
                args[name] = supplied(ctx, name, value)

        finish(commands.execute_create(args, registry=registry))

    plugin_params = add_dynamic_plugin_options(create, registry)

    @cli.group()
    def config():
        """Manage the stored configuration."""

    @config.command("show")
    def config_show():
        """Show the current configuration."""
        finish(commands.execute_config("show"))

    @config.command("set")
    @click.argument("values", nargs=-1, required=True, metavar="KEY=VALUE...")
    def config_set(values: Tuple[str, ...]):
        """Set configuration values.

        Keys may use dot notation to address a section, e.g.
        Formatter.style=yapf.
        """
        try:
            parsed = commands.parse_config_values(values)
        except PkgTmplError as e:
            finish(CommandResult(success=False, message=str(e)))
            return
        finish(commands.execute_config("set", parsed))

    @cli.command("plugin-info")
    @click.argument("plugin_name", required=False)
    def plugin_info(plugin_name: Optional[str]):
        """Show available plugins, or the fields of one plugin."""
        finish(commands.execute_plugin_info(plugin_name, registry=registry))

    @cli.command()
    @click.argument("shell", default="fish")
    def completion(shell: str):
        """Generate a shell completion script (fish, bash or zsh)."""
        finish(commands.execute_completion(shell, registry=registry))

    return cli


def main():
    """Main entry point for the CLI."""
    try:
        cli = build_cli()
    except PkgTmplError as e:
        console.print(f"Failed to discover plugins: {e}", markup=False)
        sys.exit(1)
    cli()


if __name__ == "__main__":
    main()
