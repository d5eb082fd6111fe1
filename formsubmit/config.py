"""Global configuration for formsubmit.

Settings live in ``config.yaml`` under the formsubmit home directory:

    $FORMSUBMIT_HOME/config.yaml    (if FORMSUBMIT_HOME is set)
    ~/.config/formsubmit/config.yaml

Environment variables take precedence over the file.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

CONFIG_FILENAME = "config.yaml"


class SubmitSettings(BaseModel):
    """User-level defaults for submission tooling."""

    persistent_submit_errors: bool = False
    log_level: str = "WARNING"

    model_config = {"extra": "forbid"}


def get_formsubmit_home() -> Path:
    """Return the formsubmit home directory."""
    env_home = os.environ.get("FORMSUBMIT_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / ".config" / "formsubmit"


def get_config_path() -> Path:
    return get_formsubmit_home() / CONFIG_FILENAME


def load_global_config(path: Path | None = None) -> dict[str, Any]:
    """Load the raw config mapping.

    Args:
        path: Config file to read. Defaults to the home config file.

    Returns:
        The parsed mapping, or an empty dict if the file does not exist.

    Raises:
        ValueError: If the file does not contain a YAML mapping.
    """
    config_path = path if path is not None else get_config_path()
    if not config_path.exists():
        return {}

    with open(config_path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return data


def load_settings(path: Path | None = None) -> SubmitSettings:
    """Load settings from the config file with environment overrides applied."""
    data = load_global_config(path)
    env_level = os.environ.get("FORMSUBMIT_LOG_LEVEL")
    if env_level:
        data["log_level"] = env_level
    return SubmitSettings(**data)


def write_default_config(path: Path | None = None) -> Path:
    """Write a config file holding the default settings.

    Returns:
        The path written.
    """
    config_path = path if path is not None else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(SubmitSettings().model_dump(), f, sort_keys=False)
    return config_path
