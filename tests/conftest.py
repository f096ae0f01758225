"""
Shared fixtures for fluent_rules tests.

Roots are built from explicit RootSettings so tests do not depend on the
environment or a .env file.
"""

import pytest

from fluent_rules.config.config import get_config
from fluent_rules.rules import RootSettings, RuleRegistry, ValidatorRoot


@pytest.fixture
def settings():
    """Default settings: conventional keys on, enforcement on, REPLACE behavior."""
    return RootSettings()


@pytest.fixture
def registry():
    return RuleRegistry()


@pytest.fixture
def root(registry, settings):
    return ValidatorRoot(registry=registry, settings=settings)


@pytest.fixture
def fresh_config(monkeypatch):
    """Reload the Config singleton around a test that changes the environment."""
    yield lambda: get_config().reload()
    monkeypatch.undo()
    get_config().reload()
