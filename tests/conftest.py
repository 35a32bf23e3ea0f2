"""Shared test fixtures and utilities."""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import pytest

from pkgtmpl.config import ConfigStore
from pkgtmpl.registry import PluginRegistry
from tests.fakes import Badges, Broken, Deploy, Lint, NotAPlugin


@contextmanager
def change_dir(path: Path) -> Generator[None, None, None]:
    """Context manager to temporarily change the working directory."""
    original_cwd = Path.cwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(original_cwd)


@pytest.fixture
def chdir():
    """Fixture to provide the change_dir context manager."""
    return change_dir


@pytest.fixture
def config_store(tmp_path):
    """A configuration store rooted in a temporary directory."""
    return ConfigStore(config_root=tmp_path / "config")


@pytest.fixture
def fake_registry():
    """A registry holding only the fake plugin kinds."""
    return PluginRegistry(plugin_types=[Lint, Deploy, Badges, NotAPlugin])


@pytest.fixture
def broken_registry():
    """A registry holding a plugin kind that cannot be classified."""
    return PluginRegistry(plugin_types=[Lint, Broken])
