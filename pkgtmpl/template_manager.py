"""Jinja2 rendering of plugin files, mise configuration and shell completions.

Templates live in the ``templates`` directory next to this module. Plugin
file templates are under ``templates/plugins``.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from pkgtmpl.errors import TemplateGenerationError

TEMPLATE_DIR = Path(__file__).parent / "templates"

SUPPORTED_SHELLS = ("fish", "bash", "zsh")

logger = logging.getLogger(__name__)


def get_environment() -> Environment:
    """Create the Jinja2 environment used for every rendered file."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_template(template_name: str, **context: Any) -> str:
    """Render a template by its path relative to the templates directory.

    Raises:
        TemplateGenerationError: If the template is missing or fails to render
    """
    template_path = str(TEMPLATE_DIR / template_name)

    try:
        template = get_environment().get_template(template_name)
    except TemplateNotFound as e:
        raise TemplateGenerationError("Template file not found", template_path) from e

    try:
        return template.render(**context)
    except TemplateError as e:
        msg = f"Failed to render {template_name}: {e}"
        raise TemplateGenerationError(msg, template_path) from e


def generate_mise_config(package_dir: Path, options: Mapping[str, Any]) -> Path:
    """Write a mise task-runner configuration into a generated package.

    The file is named ``<mise_filename_base>.toml`` (``.mise.toml`` by default).
    """
    package_dir = Path(package_dir)
    filename_base = options.get("mise_filename_base") or ".mise"

    rendered = render_template(
        "mise.toml.j2",
        package_name=package_dir.name,
        project_dir=".",
        mise_filename_base=filename_base,
    )

    output_path = package_dir / f"{filename_base}.toml"
    output_path.write_text(rendered)
    logger.info("Generated mise configuration at %s", output_path)
    return output_path


def generate_completion(
    shell: str, plugin_names: Iterable[str], argumentless: Iterable[str] = ()
) -> str:
    """Render the completion script of ``shell`` for the given plugins.

    Args:
        shell: One of ``fish``, ``bash`` or ``zsh``
        plugin_names: Plugin names, offered as ``--<lowercased name>`` flags
            and as ``plugin-info`` arguments
        argumentless: The subset of ``plugin_names`` exposed as plain flags

    Raises:
        TemplateGenerationError: If no template exists for ``shell``
    """
    flag_plugins = set(argumentless)
    plugins = [
        {
            "name": name,
            "flag": name.lower(),
            "argumentless": name in flag_plugins,
        }
        for name in plugin_names
    ]

    template_name = f"{shell}_completion.j2"
    if not (TEMPLATE_DIR / template_name).exists():
        raise TemplateGenerationError(
            f"Template file not found for shell: {shell}", str(TEMPLATE_DIR / template_name)
        )

    return render_template(template_name, plugins=plugins, prog="pkgtmpl")
