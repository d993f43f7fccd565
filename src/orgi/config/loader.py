"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path

import yaml

from .schema import OrgiConfig

DEFAULT_CONFIG_PATH = Path(".orgi/config.yaml")


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path | None = None) -> OrgiConfig:
    """
    Load configuration from a YAML file with environment variable substitution.

    Without an explicit path, ``.orgi/config.yaml`` is used when present and
    the built-in defaults (plus ``ORGI_*`` environment overrides) otherwise.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated OrgiConfig instance

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If environment variables are missing or the YAML is
            invalid or not a mapping
        ValidationError: If config doesn't match schema
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return OrgiConfig()
        path = DEFAULT_CONFIG_PATH
    elif not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open(encoding="utf-8") as f:
        raw_yaml = f.read()

    # Substitute environment variables
    yaml_with_env = substitute_env_vars(raw_yaml)

    # Parse YAML; an empty file means defaults
    try:
        config_dict = yaml.safe_load(yaml_with_env) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration file {path}: {e}") from e
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    return OrgiConfig.model_validate(config_dict)
