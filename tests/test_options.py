"""Tests for KEY=VALUE plugin option parsing."""

import pytest

from pkgtmpl.errors import InvalidOptionFormatError
from pkgtmpl.options import infer_value, parse_plugin_option_value, parse_plugin_options


class TestInferValue:
    """Test type inference of option values."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("true", True),
            ("false", False),
            ("123", 123),
            ("1.5", 1.5),
            ("[a,b,c]", ["a", "b", "c"]),
            ("[]", []),
            ("hello", "hello"),
        ],
    )
    def test_inferred_types(self, text, expected):
        """Test each inference rule."""
        value = infer_value(text)
        assert value == expected
        assert type(value) is type(expected)

    def test_list_elements_are_not_trimmed(self):
        """Test that whitespace inside a list is kept verbatim."""
        assert infer_value("[a, b]") == ["a", " b"]

    @pytest.mark.parametrize("text", ["-5", "1e3", "+3", "1.", ".5", "True", "FALSE", ""])
    def test_values_left_as_strings(self, text):
        """Test that values outside the recognised forms stay strings."""
        assert infer_value(text) == text

    def test_unicode_digits_are_strings(self):
        """Test that only ASCII digits are parsed as numbers."""
        assert infer_value("١٢٣") == "١٢٣"

    def test_unbalanced_bracket_is_string(self):
        """Test that a value opening but not closing a list stays a string."""
        assert infer_value("[a,b") == "[a,b"


class TestParsePluginOptionValue:
    """Test splitting a single KEY=VALUE token."""

    def test_basic_token(self):
        """Test a simple token."""
        assert parse_plugin_option_value("style=ruff") == ("style", "ruff")

    def test_value_keeps_later_equals(self):
        """Test that only the first '=' separates key and value."""
        assert parse_plugin_option_value("url=https://x?a=b") == ("url", "https://x?a=b")

    def test_empty_value(self):
        """Test that an empty value is an empty string."""
        assert parse_plugin_option_value("name=") == ("name", "")

    def test_typed_value(self):
        """Test that the value goes through type inference."""
        assert parse_plugin_option_value("indent=2") == ("indent", 2)

    def test_missing_equals(self):
        """Test that a token without '=' is rejected."""
        with pytest.raises(InvalidOptionFormatError) as exc_info:
            parse_plugin_option_value("novalue")

        assert exc_info.value.token == "novalue"
        assert "Invalid plugin option format: 'novalue'" in str(exc_info.value)
        assert isinstance(exc_info.value, ValueError)


class TestParsePluginOptions:
    """Test grouping of plugin options by plugin name."""

    def test_groups_by_plugin(self):
        """Test that each '--Plugin' entry becomes a mapping of typed values."""
        args = {
            "--Formatter": ["style=ruff", "indent=2"],
            "--Docker": ("base_image=python:3.12",),
            "user": "me",
        }
        assert parse_plugin_options(args) == {
            "Formatter": {"style": "ruff", "indent": 2},
            "Docker": {"base_image": "python:3.12"},
        }

    def test_ignores_flags_and_plain_keys(self):
        """Test that boolean flags and plain options are not plugin options."""
        args = {"--Git": True, "--Readme": None, "author": "Jane", "formatter": True}
        assert parse_plugin_options(args) == {}

    def test_empty_list_gives_empty_mapping(self):
        """Test that a plugin with no tokens still appears."""
        assert parse_plugin_options({"--Docker": []}) == {"Docker": {}}

    def test_later_token_wins(self):
        """Test that repeating a key keeps the last value."""
        args = {"--Formatter": ["indent=2", "indent=8"]}
        assert parse_plugin_options(args) == {"Formatter": {"indent": 8}}

    def test_prefix_removed_once(self):
        """Test that only the leading '--' is removed from the plugin name."""
        assert parse_plugin_options({"----Odd": ["a=1"]}) == {"--Odd": {"a": 1}}

    def test_invalid_token_propagates(self):
        """Test that a malformed token aborts parsing."""
        with pytest.raises(InvalidOptionFormatError):
            parse_plugin_options({"--Formatter": ["style"]})
