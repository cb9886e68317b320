"""Configuration management module.

Resolves the settings dotenvify runs with, once, at startup. Sources in
increasing precedence:

1. ~/.dotenvify/config.toml (or an explicit --config file)
2. Environment variables (AZURE_DEVOPS_ORG, AZURE_DEVOPS_PROJECT, AZURE_DEVOPS_URL)
3. Command-line flags

The resulting DotenvifyConfig is passed to the components explicitly; no
component reads the environment on its own.

Example config.toml:

    organization = "contoso"
    project = "web"
    variable_group = "web-dev"
    output_file = ".env"
    preserve = ["DATABASE_URL"]
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python 3.11+
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

from dotenvify.errors import DotenvifyError

logger = logging.getLogger(__name__)

ENV_ORGANIZATION = "AZURE_DEVOPS_ORG"
ENV_PROJECT = "AZURE_DEVOPS_PROJECT"
ENV_URL = "AZURE_DEVOPS_URL"

DEFAULT_OUTPUT_FILE = ".env"


class ConfigError(DotenvifyError):
    """Raised when configuration cannot be loaded."""

    pass


@dataclass
class DotenvifyConfig:
    """Resolved dotenvify settings."""

    organization: str | None = None
    project: str | None = None
    url: str | None = None
    variable_group: str | None = None
    output_file: str = DEFAULT_OUTPUT_FILE
    preserve: list[str] = field(default_factory=list)
    include_disabled: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DotenvifyConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        preserve = data.get("preserve", [])
        if isinstance(preserve, str):
            preserve = [name.strip() for name in preserve.split(",") if name.strip()]

        return cls(
            organization=data.get("organization"),
            project=data.get("project"),
            url=data.get("url"),
            variable_group=data.get("variable_group"),
            output_file=data.get("output_file", DEFAULT_OUTPUT_FILE),
            preserve=list(preserve),
            include_disabled=bool(data.get("include_disabled", False)),
        )


class ConfigManager:
    """Load dotenvify configuration.

    Configuration is read from ~/.dotenvify/config.toml when present.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".dotenvify"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If a custom path is given but does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> DotenvifyConfig:
        """Load configuration from file.

        A missing default config file yields defaults.

        Raises:
            ConfigError: If the file cannot be read or is not valid TOML
        """
        config_path = cls.get_config_path(custom_path)
        if not config_path.exists():
            logger.debug(f"No config file at {config_path}, using defaults")
            return DotenvifyConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

        logger.debug(f"Loaded config from {config_path}")
        return DotenvifyConfig.from_dict(data)

    @classmethod
    def apply_environment(
        cls, config: DotenvifyConfig, environ: Mapping[str, str] | None = None
    ) -> DotenvifyConfig:
        """Overlay AZURE_DEVOPS_* environment variables onto a config."""
        environ = os.environ if environ is None else environ
        overrides = {
            attr: environ[var]
            for attr, var in (
                ("organization", ENV_ORGANIZATION),
                ("project", ENV_PROJECT),
                ("url", ENV_URL),
            )
            if environ.get(var)
        }
        return replace(config, **overrides)

    @classmethod
    def resolve(
        cls,
        custom_path: str | None = None,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> DotenvifyConfig:
        """Build the effective configuration.

        Args:
            custom_path: Explicit config file path
            environ: Environment mapping (defaults to os.environ)
            **overrides: Values from command-line flags; None means "not given"

        Returns:
            DotenvifyConfig with file, environment and flags applied
        """
        config = cls.apply_environment(cls.load_config(custom_path), environ)
        given = {key: value for key, value in overrides.items() if value is not None}
        config = replace(config, **given)

        if not config.variable_group:
            config = replace(config, variable_group=Path.cwd().name)
        return config


__all__ = ["ConfigError", "ConfigManager", "DotenvifyConfig"]
