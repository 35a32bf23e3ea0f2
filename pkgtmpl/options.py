"""Parsing of KEY=VALUE plugin options given on the command line."""

import re
from typing import Any, Dict, Mapping, Tuple

from pkgtmpl.errors import InvalidOptionFormatError
from pkgtmpl.models import TypedValue

PLUGIN_FLAG_PREFIX = "--"

# ASCII only: str.isdigit() would also accept other Unicode digits
_INT_RE = re.compile(r"[0-9]+", re.ASCII)
_FLOAT_RE = re.compile(r"[0-9]+\.[0-9]+", re.ASCII)


def infer_value(text: str) -> TypedValue:
    """Convert the value part of a plugin option to a typed value.

    The rules are tried in order and the first match wins:

    - ``true`` / ``false`` become booleans
    - ``[a,b]`` becomes ``["a", "b"]`` (elements are not stripped, ``[]`` is empty)
    - ``123`` becomes an int, ``1.5`` a float
    - anything else, including ``-5`` and ``1e3``, stays a string
    """
    if text == "true":
        return True
    if text == "false":
        return False

    if len(text) >= 2 and text.startswith("[") and text.endswith("]"):
        inner = text[1:-1]
        if not inner:
            return []
        return inner.split(",")

    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)

    return text


def parse_plugin_option_value(token: str) -> Tuple[str, TypedValue]:
    """Split a ``KEY=VALUE`` token on its first ``=`` and type the value.

    Raises:
        InvalidOptionFormatError: If the token has no ``=``
    """
    if "=" not in token:
        raise InvalidOptionFormatError(token)

    key, value = token.split("=", 1)
    return key, infer_value(value)


def parse_plugin_options(args: Mapping[str, Any]) -> Dict[str, Dict[str, TypedValue]]:
    """Group the multi-value plugin entries of parsed CLI arguments by plugin.

    Only keys starting with ``--`` whose value is a list or tuple of raw
    tokens are considered; boolean plugin flags stay in the general options.

    Example:
        ```python
        parse_plugin_options({"--Formatter": ["style=ruff", "indent=2"], "user": "me"})
        # Returns: {"Formatter": {"style": "ruff", "indent": 2}}
        ```
    """
    plugin_options: Dict[str, Dict[str, TypedValue]] = {}

    for key, values in args.items():
        if not key.startswith(PLUGIN_FLAG_PREFIX) or not isinstance(values, (list, tuple)):
            continue

        plugin_name = key[len(PLUGIN_FLAG_PREFIX):]
        options = plugin_options.setdefault(plugin_name, {})
        for token in values:
            opt_key, opt_value = parse_plugin_option_value(token)
            options[opt_key] = opt_value

    return plugin_options
