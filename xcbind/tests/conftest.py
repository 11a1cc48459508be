"""Unit tests configuration file."""

import os

import pytest

from xcbind.generator import ModuleSet, load_modules

XML_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "generator", "xml")


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def load():
    """Load protocol modules from the fixture directory."""

    def _load(*names: str) -> ModuleSet:
        return load_modules(names, XML_DIR)

    return _load
