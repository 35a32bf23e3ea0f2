"""Registry for plugin discovery, classification and metadata."""

import importlib.metadata
import logging
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Type

from pydantic import ValidationError

from pkgtmpl.errors import PluginConstructionError, PluginNotFoundError
from pkgtmpl.models import PluginDescriptor, PluginDetails, PluginField
from pkgtmpl.plugins import Constructible, Describable, Plugin

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "pkgtmpl.plugins"


class FieldDefault(NamedTuple):
    """A default value found by one of the lookup strategies."""

    value: Any


DefaultStrategy = Callable[[Type[Any], str], Optional[FieldDefault]]


def format_annotation(annotation: Any) -> str:
    """Readable name of a field annotation (``str``, ``List[str]``, ...)."""
    if annotation is None:
        return "Any"
    if isinstance(annotation, type) and not getattr(annotation, "__args__", None):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


class PluginRegistry:
    """Discovers plugin kinds and describes their options.

    Discovery walks the subclasses of ``Plugin`` every time it is asked, so
    descriptors always reflect the classes currently defined. Plugins
    registered through the ``pkgtmpl.plugins`` entry-point group are
    imported on the first discovery.
    """

    def __init__(self, plugin_types: Optional[Iterable[Type[Any]]] = None):
        self._plugin_types = list(plugin_types) if plugin_types is not None else None
        self._entry_points_loaded = False

    def get_plugin_types(self) -> List[Type[Any]]:
        """Get every concrete plugin class, sorted by plugin name."""
        if self._plugin_types is not None:
            plugin_types = self._plugin_types
        else:
            self._load_entry_points()
            plugin_types = list(_concrete_subclasses(Plugin))

        plugin_types = [
            plugin_type
            for plugin_type in plugin_types
            if isinstance(plugin_type, Describable) and isinstance(plugin_type, Constructible)
        ]
        return sorted(plugin_types, key=lambda plugin_type: plugin_type.plugin_name())

    def _load_entry_points(self) -> None:
        """Import the modules that third-party packages register as plugins."""
        if self._entry_points_loaded:
            return
        self._entry_points_loaded = True

        for entry_point in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                entry_point.load()
            except Exception as e:
                # Log but continue discovering other plugins
                logger.warning("Failed to load plugin entry point '%s': %s", entry_point.name, e)

    def discover(self) -> List[PluginDescriptor]:
        """List all plugin kinds, sorted by name, with their CLI classification."""
        return [
            PluginDescriptor(
                name=plugin_type.plugin_name(),
                plugin_type=plugin_type,
                argumentless=self.is_argumentless(plugin_type),
            )
            for plugin_type in self.get_plugin_types()
        ]

    def plugin_names(self) -> List[str]:
        """Names of all plugin kinds, in discovery order."""
        return [plugin_type.plugin_name() for plugin_type in self.get_plugin_types()]

    def is_argumentless(self, plugin: Any) -> bool:
        """Check whether a plugin kind can be constructed without arguments.

        Args:
            plugin: A ``PluginDescriptor`` or a plugin class

        Returns:
            True if construction succeeds, False if it fails only because
            required fields are missing

        Raises:
            PluginConstructionError: If construction fails for any other reason
        """
        plugin_type = plugin.plugin_type if isinstance(plugin, PluginDescriptor) else plugin

        try:
            plugin_type.construct_default()
        except ValidationError as e:
            if all(error["type"] == "missing" for error in e.errors()):
                return False
            raise PluginConstructionError(plugin_type.plugin_name(), e) from e
        except Exception as e:
            raise PluginConstructionError(plugin_type.plugin_name(), e) from e

        return True

    def get_plugin(self, name: str) -> Type[Any]:
        """Get a plugin class by its exact name.

        Raises:
            PluginNotFoundError: If no plugin has this name
        """
        plugin_types = self.get_plugin_types()
        for plugin_type in plugin_types:
            if plugin_type.plugin_name() == name:
                return plugin_type

        available = [plugin_type.plugin_name() for plugin_type in plugin_types]
        raise PluginNotFoundError(name, available)

    def describe(self, name: str) -> PluginDetails:
        """Get field names, types and defaults of a plugin.

        Args:
            name: Plugin name (e.g. ``"Git"``)

        Returns:
            Plugin details; a default that cannot be determined is ``None``

        Raises:
            PluginNotFoundError: If the plugin is unknown
        """
        plugin_type = self.get_plugin(name)
        argumentless = self.is_argumentless(plugin_type)

        strategies: List[DefaultStrategy] = [_default_from_declaration]
        if argumentless:
            strategies.append(_default_from_instance)

        fields = []
        for field_name, annotation in plugin_type.plugin_fields():
            default = None
            for strategy in strategies:
                found = strategy(plugin_type, field_name)
                if found is not None:
                    default = found.value
                    break

            fields.append(
                PluginField(name=field_name, type=format_annotation(annotation), default=default)
            )

        return PluginDetails(
            name=name,
            description=(plugin_type.__doc__ or "").strip(),
            argumentless=argumentless,
            fields=fields,
        )


def _concrete_subclasses(base: Type[Any]) -> Iterable[Type[Any]]:
    """Walk the subclass tree of ``base``, skipping abstract classes."""
    seen = set()
    stack = list(base.__subclasses__())
    while stack:
        cls = stack.pop()
        if cls in seen:
            continue
        seen.add(cls)
        stack.extend(cls.__subclasses__())
        if not cls.__dict__.get("abstract", False):
            yield cls


def _default_from_declaration(plugin_type: Type[Any], field_name: str) -> Optional[FieldDefault]:
    """Default declared on the model field, calling a default factory if needed."""
    model_fields = getattr(plugin_type, "model_fields", None)
    if not model_fields or field_name not in model_fields:
        return None

    field_info = model_fields[field_name]
    if field_info.is_required():
        return None
    return FieldDefault(field_info.get_default(call_default_factory=True))


def _default_from_instance(plugin_type: Type[Any], field_name: str) -> Optional[FieldDefault]:
    """Read the field from an instance built without arguments."""
    try:
        instance = plugin_type.construct_default()
    except Exception:
        return None
    if not hasattr(instance, field_name):
        return None
    return FieldDefault(getattr(instance, field_name))


# Global registry instance
registry = PluginRegistry()
