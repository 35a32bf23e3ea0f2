"""pkgtmpl error handling with rich context and suggestions."""

import difflib
from pathlib import Path
from typing import List, Optional

import yaml

# Constants
MAX_SUGGESTION_VALUES = 10


def close_match_suggestion(
    invalid_value: str, valid_values: List[str], field_name: Optional[str] = None
) -> Optional[str]:
    """Build a "did you mean" hint from the closest valid values, if any."""
    matches = difflib.get_close_matches(invalid_value, valid_values, n=3, cutoff=0.6)
    if not matches:
        return None

    suffix = f" for {field_name}" if field_name else ""
    if len(matches) == 1:
        return f"Did you mean '{matches[0]}'{suffix}?"
    matches_quoted = [f"'{m}'" for m in matches]
    return f"Did you mean one of: {', '.join(matches_quoted)}{suffix}?"


class PkgTmplError(Exception):
    """Base exception for all pkgtmpl errors."""


class ConfigurationError(PkgTmplError):
    """Configuration-related errors with rich context."""

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        line_number: Optional[int] = None,
        column: Optional[int] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.column = column
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context and suggestions."""
        lines = []

        # Header
        if self.file_path:
            lines.append(f"❌ Configuration Error in {self.file_path.name}")
        else:
            lines.append("❌ Configuration Error")

        # Location info
        if self.line_number:
            location = f"  Line {self.line_number}"
            if self.column:
                location += f", Column {self.column}"
            lines.append(location)

        lines.append(f"  {self.message}")

        if self.file_path and self.line_number:
            context = self._get_file_context()
            if context:
                lines.extend(context)

        if self.suggestions:
            lines.append("")
            lines.append("  💡 Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"    • {suggestion}")

        return "\n".join(lines)

    def _get_file_context(self) -> List[str]:
        """Get surrounding lines from the configuration file."""
        if not self.file_path or not self.file_path.exists() or not self.line_number:
            return []

        try:
            with self.file_path.open(errors="replace") as f:
                file_lines = f.readlines()
        except OSError:
            return []

        # Show 2 lines before and after
        start = max(0, self.line_number - 3)
        end = min(len(file_lines), self.line_number + 2)

        context_lines = ["", "  File context:"]
        for i in range(start, end):
            line_num = i + 1
            marker = "  > " if line_num == self.line_number else "    "
            line_content = file_lines[i].rstrip()
            context_lines.append(f"{marker}{line_num:3} | {line_content}")

            if line_num == self.line_number and self.column:
                arrow_line = " " * (len(f"{marker}{line_num:3} | ") + self.column - 1) + "^"
                context_lines.append(arrow_line)

        return context_lines


class ConfigurationParseError(ConfigurationError):
    """The stored configuration file exists but is not valid YAML."""

    @classmethod
    def from_yaml_error(
        cls, yaml_error: yaml.YAMLError, file_path: Path
    ) -> "ConfigurationParseError":
        """Create from a yaml.YAMLError with extracted line information."""
        line_number = None
        column = None
        message = str(yaml_error)

        mark = getattr(yaml_error, "problem_mark", None)
        if mark is not None:
            line_number = mark.line + 1  # YAML uses 0-based indexing
            column = mark.column + 1

        problem = getattr(yaml_error, "problem", None)
        if problem:
            message = problem

        suggestions = [
            "Check YAML syntax (proper indentation, quotes, etc.)",
            "Keep every setting under the top-level 'default:' section",
            f"Delete {file_path.name} to regenerate the default configuration",
        ]

        return cls(message, file_path, line_number, column, suggestions)


class InvalidOptionFormatError(PkgTmplError, ValueError):
    """A plugin option token is not of the form KEY=VALUE."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid plugin option format: '{token}'. Expected 'key=value'")


class PluginNotFoundError(PkgTmplError):
    """Plugin not found error with suggestions."""

    def __init__(self, plugin_name: str, available_plugins: Optional[List[str]] = None):
        self.plugin_name = plugin_name
        self.available_plugins = list(available_plugins or [])

        message = f"Plugin '{plugin_name}' not found"
        suggestions = []

        if self.available_plugins:
            did_you_mean = close_match_suggestion(plugin_name, self.available_plugins)
            if did_you_mean:
                suggestions.append(did_you_mean)

            suggestions.append(f"Available plugins: {', '.join(self.available_plugins)}")
        else:
            suggestions.append("No plugins are registered")

        super().__init__(
            f"{message}\n\n💡 Suggestions:\n" + "\n".join(f"  • {s}" for s in suggestions)
        )


class PluginConstructionError(PkgTmplError):
    """A plugin failed zero-argument construction for a reason other than missing fields."""

    def __init__(self, plugin_name: str, cause: Exception):
        self.plugin_name = plugin_name
        self.cause = cause
        super().__init__(
            f"Plugin '{plugin_name}' could not be constructed: "
            f"{type(cause).__name__}: {cause}"
        )


class PackageGenerationError(PkgTmplError):
    """Error occurring while generating a package on disk."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause

        full_message = message
        if cause is not None:
            full_message += f"\nCaused by: {cause}"

        super().__init__(full_message)


class TemplateGenerationError(PkgTmplError):
    """Error occurring while rendering an auxiliary template."""

    def __init__(self, message: str, template_path: str):
        self.message = message
        self.template_path = template_path
        super().__init__(f"{message}\nTemplate file: {template_path}")


def suggest_valid_values(invalid_value: str, valid_values: List[str], field_name: str) -> List[str]:
    """Generate suggestions for invalid values.

    Args:
        invalid_value: The invalid value that was provided
        valid_values: List of valid values for the field
        field_name: Name of the field for context

    Returns:
        List of suggestion strings for error messages

    Example:
        ```python
        suggestions = suggest_valid_values("MTI", ["MIT", "ISC"], "license")
        # Returns: ["Did you mean 'MIT' for license?", "Valid values for license: ISC, MIT"]
        ```
    """
    suggestions = []

    did_you_mean = close_match_suggestion(invalid_value, valid_values, field_name)
    if did_you_mean:
        suggestions.append(did_you_mean)

    # Show all valid values if not too many
    if len(valid_values) <= MAX_SUGGESTION_VALUES:
        suggestions.append(f"Valid values for {field_name}: {', '.join(sorted(valid_values))}")

    return suggestions
