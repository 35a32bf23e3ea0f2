"""Plugin kinds understood by the package generator.

Every plugin is a pydantic model whose fields are its options. Plugins whose
fields all have defaults can be constructed without arguments and appear on
the command line as plain flags; the others take ``--<plugin> KEY=VALUE``.
Any plugin can also be configured in a capitalised section of the stored
configuration (``Formatter.style=yapf``).

Third-party packages can contribute plugin kinds by subclassing ``Plugin``
and exposing the module through the ``pkgtmpl.plugins`` entry-point group.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pkgtmpl.errors import suggest_valid_values
from pkgtmpl.models import GenerationContext
from pkgtmpl.template_manager import render_template

logger = logging.getLogger(__name__)


@runtime_checkable
class Describable(Protocol):
    """A plugin kind that can list its option fields."""

    @classmethod
    def plugin_name(cls) -> str: ...

    @classmethod
    def plugin_fields(cls) -> Iterator[Tuple[str, Any]]: ...


@runtime_checkable
class Constructible(Protocol):
    """A plugin kind that can attempt construction without arguments."""

    @classmethod
    def construct_default(cls) -> Any: ...


class Plugin(BaseModel):
    """Base class for all plugin kinds.

    Subclasses render files through ``render`` and may act on the written
    package in ``after_write``. Setting ``abstract = True`` in a class body
    keeps an intermediate base class out of discovery.
    """

    model_config = ConfigDict(extra="forbid")

    abstract: ClassVar[bool] = True

    @classmethod
    def plugin_name(cls) -> str:
        return cls.__name__

    @classmethod
    def plugin_fields(cls) -> Iterator[Tuple[str, Any]]:
        """Yield ``(field_name, annotation)`` in declaration order."""
        for name, field_info in cls.model_fields.items():
            yield name, field_info.annotation

    @classmethod
    def construct_default(cls) -> "Plugin":
        return cls()

    def render(self, context: GenerationContext) -> Dict[str, str]:
        """Return the files of this plugin as ``{relative path: content}``."""
        return {}

    def after_write(self, package_dir: Path) -> None:
        """Hook run once every plugin's files have been written."""


class ProjectFile(Plugin):
    """pyproject.toml with project metadata and build backend."""

    version: str = "0.1.0"
    build_backend: str = "hatchling"
    dependencies: List[str] = Field(default_factory=list)

    BACKENDS: ClassVar[Dict[str, str]] = {
        "hatchling": "hatchling.build",
        "setuptools": "setuptools.build_meta",
        "flit_core": "flit_core.buildapi",
    }

    @field_validator("build_backend")
    @classmethod
    def check_backend(cls, value: str) -> str:
        if value not in cls.BACKENDS:
            suggestions = suggest_valid_values(value, list(cls.BACKENDS), "build_backend")
            raise ValueError(f"Unknown build backend '{value}'. " + " ".join(suggestions))
        return value

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template(
            "plugins/pyproject.toml.j2",
            plugin=self,
            ctx=context,
            backend_module=self.BACKENDS[self.build_backend],
        )
        return {"pyproject.toml": content}


class SrcDir(Plugin):
    """src/ layout with the package module."""

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template("plugins/init.py.j2", plugin=self, ctx=context)
        return {f"src/{context.module_name}/__init__.py": content}


class Tests(Plugin):
    """tests/ directory with a first pytest module."""

    folder: str = "tests"
    conftest: bool = False

    def render(self, context: GenerationContext) -> Dict[str, str]:
        files = {
            f"{self.folder}/test_{context.module_name}.py": render_template(
                "plugins/test_module.py.j2", plugin=self, ctx=context
            ),
        }
        if self.conftest:
            files[f"{self.folder}/conftest.py"] = render_template(
                "plugins/conftest.py.j2", plugin=self, ctx=context
            )
        return files


class Readme(Plugin):
    """README with badges for the enabled CI plugins."""

    file: str = "README.md"
    badges: bool = True

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template("plugins/README.md.j2", plugin=self, ctx=context)
        return {self.file: content}


class License(Plugin):
    """LICENSE file."""

    name: str = "MIT"
    destination: str = "LICENSE"

    LICENSES: ClassVar[Tuple[str, ...]] = ("MIT", "ISC", "BSD-2-Clause")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if value not in cls.LICENSES:
            suggestions = suggest_valid_values(value, list(cls.LICENSES), "license")
            raise ValueError(f"Unknown license '{value}'. " + " ".join(suggestions))
        return value

    def render(self, context: GenerationContext) -> Dict[str, str]:
        template = f"plugins/licenses/{self.name}.j2"
        holder = ", ".join(context.authors) or context.user or context.package_name
        content = render_template(template, plugin=self, ctx=context, holder=holder)
        return {self.destination: content}


class Git(Plugin):
    """.gitignore and, with ``init=true``, a fresh repository."""

    ignore: List[str] = Field(default_factory=list)
    branch: str = "main"
    init: bool = False

    @field_validator("ignore", mode="before")
    @classmethod
    def split_ignore(cls, value: Any) -> Any:
        # A plain string from the config file is a comma separated list
        if isinstance(value, str):
            return [item for item in value.split(",") if item]
        return value

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template("plugins/gitignore.j2", plugin=self, ctx=context)
        return {".gitignore": content}

    def after_write(self, package_dir: Path) -> None:
        if not self.init:
            return

        git = shutil.which("git")
        if git is None:
            logger.warning("git executable not found; skipping repository initialisation")
            return

        subprocess.run(  # noqa: S603
            [git, "init", "--quiet", "--initial-branch", self.branch],
            cwd=package_dir,
            check=True,
            capture_output=True,
            text=True,
        )
        logger.info("Initialised git repository in %s", package_dir)


class Formatter(Plugin):
    """Code formatter configuration (ruff.toml or .style.yapf)."""

    style: str = "ruff"
    indent: int = 4
    margin: int = 88

    STYLES: ClassVar[Dict[str, str]] = {
        "ruff": "ruff.toml",
        "yapf": ".style.yapf",
    }

    @field_validator("style")
    @classmethod
    def check_style(cls, value: str) -> str:
        if value not in cls.STYLES:
            suggestions = suggest_valid_values(value, list(cls.STYLES), "style")
            raise ValueError(f"Unknown formatter style '{value}'. " + " ".join(suggestions))
        return value

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template(f"plugins/formatter_{self.style}.j2", plugin=self, ctx=context)
        return {self.STYLES[self.style]: content}


class GitHubActions(Plugin):
    """GitHub Actions CI workflow running the tests."""

    file: str = ".github/workflows/CI.yml"
    python_versions: List[str] = Field(default_factory=lambda: ["3.11", "3.12"])
    coverage: bool = False

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template("plugins/ci.yml.j2", plugin=self, ctx=context)
        return {self.file: content}


class Docker(Plugin):
    """Dockerfile building the package on top of ``base_image``."""

    base_image: str
    workdir: str = "/app"

    def render(self, context: GenerationContext) -> Dict[str, str]:
        content = render_template("plugins/Dockerfile.j2", plugin=self, ctx=context)
        return {"Dockerfile": content}


class MkDocs(Plugin):
    """MkDocs documentation site."""

    site_name: str
    theme: str = "material"
    repo_url: Optional[str] = None

    def render(self, context: GenerationContext) -> Dict[str, str]:
        return {
            "mkdocs.yml": render_template("plugins/mkdocs.yml.j2", plugin=self, ctx=context),
            "docs/index.md": render_template("plugins/docs_index.md.j2", plugin=self, ctx=context),
        }
