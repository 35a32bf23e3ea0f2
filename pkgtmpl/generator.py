"""Package generation from resolved general and plugin options."""

import datetime
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from pkgtmpl.errors import PackageGenerationError, PkgTmplError
from pkgtmpl.models import GenerationContext
from pkgtmpl.plugins import Plugin
from pkgtmpl.registry import PluginRegistry, registry as default_registry

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS = ("ProjectFile", "SrcDir", "Tests", "Readme", "License", "Git")
DEFAULT_PYTHON_VERSION = "3.11"


def build_authors(options: Mapping[str, Any]) -> List[str]:
    """Turn the ``author`` and ``mail`` options into an ``authors`` list."""
    if options.get("authors"):
        return list(options["authors"])

    author = options.get("author") or ""
    if not author:
        return []

    mail = options.get("mail") or ""
    return [f"{author} <{mail}>" if mail else author]


def select_plugins(
    options: Mapping[str, Any],
    plugin_options: Mapping[str, Mapping[str, Any]],
    registry: Optional[PluginRegistry] = None,
) -> Dict[str, Dict[str, Any]]:
    """Decide which plugins to instantiate and with which options.

    The default plugins are always included. An argumentless plugin is added
    when its lowercased name is set to ``True`` in the general options, and
    every plugin with an option map is added with those options.
    """
    registry = registry or default_registry

    selected: Dict[str, Dict[str, Any]] = {name: {} for name in DEFAULT_PLUGINS}

    for name in registry.plugin_names():
        if options.get(name.lower()) is True:
            selected.setdefault(name, {})

    for name, plugin_opts in plugin_options.items():
        selected.setdefault(name, {}).update(plugin_opts)

    return selected


def instantiate_plugins(
    plugin_options: Mapping[str, Mapping[str, Any]],
    registry: Optional[PluginRegistry] = None,
) -> List[Plugin]:
    """Instantiate plugins from ``{plugin name: options}``.

    Raises:
        PluginNotFoundError: If a plugin name is unknown
        PackageGenerationError: If options fail validation
    """
    registry = registry or default_registry
    plugins = []

    for plugin_name, options in plugin_options.items():
        plugin_type = registry.get_plugin(plugin_name)
        try:
            plugins.append(plugin_type(**options) if options else plugin_type.construct_default())
        except ValidationError as e:
            msg = f"Invalid options for plugin {plugin_name}"
            raise PackageGenerationError(msg, cause=e) from e

    return plugins


def validate_package_name(name: str) -> None:
    if not name.isidentifier():
        msg = f"Invalid package name '{name}': must be a valid Python identifier"
        raise PackageGenerationError(msg)


def create_package(
    name: str,
    options: Mapping[str, Any],
    plugin_options: Mapping[str, Mapping[str, Any]],
    output_dir: Union[str, Path, None] = None,
    registry: Optional[PluginRegistry] = None,
) -> Path:
    """Generate a package directory from resolved options.

    Args:
        name: Package name, a valid Python identifier
        options: General options (author, mail, user, python_version, ...)
        plugin_options: Options per plugin name
        output_dir: Directory in which the package directory is created
        registry: Registry used to resolve plugin names

    Returns:
        Path to the generated package

    Raises:
        PackageGenerationError: If generation fails
        PluginNotFoundError: If a plugin name is unknown
    """
    validate_package_name(name)

    package_dir = Path(output_dir or Path.cwd()) / name
    if package_dir.exists():
        msg = f"Destination {package_dir} already exists"
        raise PackageGenerationError(msg)

    selected = select_plugins(options, plugin_options, registry)
    plugins = instantiate_plugins(selected, registry)

    context = GenerationContext(
        package_name=name,
        authors=build_authors(options),
        user=options.get("user") or "",
        mail=options.get("mail") or "",
        python_version=str(options.get("python_version") or DEFAULT_PYTHON_VERSION),
        year=datetime.date.today().year,
        plugins=[plugin.plugin_name() for plugin in plugins],
    )

    try:
        files: Dict[str, str] = {}
        for plugin in plugins:
            files.update(plugin.render(context))

        for relative_path, content in sorted(files.items()):
            path = package_dir / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            logger.info("Wrote %s", path)

        for plugin in plugins:
            plugin.after_write(package_dir)
    except PkgTmplError as e:
        msg = f"Failed to generate package {name}"
        raise PackageGenerationError(msg, cause=e) from e
    except (OSError, subprocess.CalledProcessError) as e:
        msg = f"Failed to write package {name}: {e}"
        raise PackageGenerationError(msg, cause=e) from e

    return package_dir
