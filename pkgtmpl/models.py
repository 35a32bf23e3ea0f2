"""Pydantic models shared by the commands, the registry and the generator."""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Value produced by inferring the type of a KEY=VALUE plugin option.
TypedValue = Union[bool, int, float, str, List[str]]


class CommandResult(BaseModel):
    """Outcome of a command executor."""

    success: bool
    message: Optional[str] = None


class PluginDescriptor(BaseModel):
    """A discovered plugin kind and its CLI classification."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    plugin_type: Any = Field(exclude=True)
    argumentless: bool

    @property
    def flag(self) -> str:
        """The command-line flag exposing this plugin."""
        return f"--{self.name.lower()}"


class PluginField(BaseModel):
    name: str
    type: str
    default: Any = None


class PluginDetails(BaseModel):
    """Field metadata of one plugin kind, as shown by ``plugin-info``."""

    name: str
    description: str = ""
    argumentless: bool = True
    fields: List[PluginField] = Field(default_factory=list)


class GenerationContext(BaseModel):
    """Values every plugin template can reference."""

    package_name: str
    authors: List[str] = Field(default_factory=list)
    user: str = ""
    mail: str = ""
    python_version: str = "3.11"
    year: int
    plugins: List[str] = Field(default_factory=list)

    @property
    def module_name(self) -> str:
        return self.package_name.lower()
