"""Pytest configuration and fixtures for dotenvify tests.

CRITICAL: Keeps the developer's own configuration out of test runs.
"""

import pytest

from dotenvify.config_manager import ENV_ORGANIZATION, ENV_PROJECT, ENV_URL, ConfigManager


@pytest.fixture(autouse=True)
def isolate_user_config(tmp_path_factory, monkeypatch):
    """Point ConfigManager at an empty directory and clear AZURE_DEVOPS_* variables.

    Tests should NEVER read ~/.dotenvify/config.toml or pick up an
    organization/project from the developer's shell.
    """
    config_dir = tmp_path_factory.mktemp("dotenvify-config")
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")

    for var in (ENV_ORGANIZATION, ENV_PROJECT, ENV_URL):
        monkeypatch.delenv(var, raising=False)

    yield config_dir
