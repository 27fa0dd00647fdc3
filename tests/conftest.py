"""
Shared test fixtures and helpers for the Mortar test suite.
"""

import pytest

from mortar.config import ConfigManager
from mortar.modules.manager import ModuleManager
from mortar.modules.metadata import ModuleMetadataCache
from mortar.testing import RecordingListener


# ============================================================================
# Config
# ============================================================================


@pytest.fixture
def config_folder(tmp_path):
    """An empty config folder."""
    folder = tmp_path / "config"
    folder.mkdir()
    return folder


@pytest.fixture
def config(config_folder):
    """A ConfigManager rooted at an empty temporary config folder."""
    return ConfigManager(config_folder=config_folder)


@pytest.fixture
def write_properties(config_folder):
    """Write a property file with one ``key=value`` per line into the config folder."""

    def write(name, lines):
        path = config_folder / name
        path.write_text("\n".join(lines) + "\n")
        return path

    return write


# ============================================================================
# Modules
# ============================================================================


@pytest.fixture
def cache():
    return ModuleMetadataCache()


@pytest.fixture
def manager(config, cache):
    """A ModuleManager with its default collaborators installed."""
    return ModuleManager(config, cache=cache)


@pytest.fixture
def listener(manager):
    """A RecordingListener attached to the manager's diagnostics."""
    recorder = RecordingListener()
    manager.diagnostics.add_listener(recorder)
    return recorder
