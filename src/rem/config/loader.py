"""Configuration loader for rem."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from rem.config.schema import RemConfig

CONFIG_FILENAME = "config.yaml"
DEFAULT_LOCATION_LABEL = "[default]"

# CLI key -> model field
CONFIG_KEYS = {
    "history-limit": "history_limit",
    "show-binary": "show_binary",
    "history-location": "history_location",
}


def default_config_path() -> Path:
    return Path.home() / ".config" / "rem" / CONFIG_FILENAME


def load_config(path: Path | str | None = None) -> RemConfig:
    """Load configuration from a YAML file.

    If path is None the default location is used. A missing file or an
    empty document yields defaults. Raises ValueError for malformed YAML or
    invalid values.
    """
    path = Path(path).expanduser() if path is not None else default_config_path()
    if not path.is_file():
        return RemConfig()

    text = path.read_text()
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Malformed YAML in {path}: {e}") from e

    if data is None or not isinstance(data, dict):
        return RemConfig()

    try:
        return RemConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e


def save_config(config: RemConfig, path: Path | str | None = None) -> Path:
    """Write configuration as YAML. Returns the path written."""
    path = Path(path).expanduser() if path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config.model_dump(), sort_keys=True))
    return path


def _field_for(key: str) -> str:
    try:
        return CONFIG_KEYS[key]
    except KeyError:
        valid = ", ".join(CONFIG_KEYS)
        raise ValueError(f"unknown configuration key: {key} (valid keys: {valid})") from None


def get_value(config: RemConfig, key: str) -> str:
    """Render one configuration value for display."""
    field = _field_for(key)
    value = getattr(config, field)
    if field == "history_location" and not value:
        return DEFAULT_LOCATION_LABEL
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def set_value(config: RemConfig, key: str, value: str) -> RemConfig:
    """Return a copy of config with key set from its string form."""
    field = _field_for(key)
    parsed: int | bool | str
    if field == "history_limit":
        try:
            parsed = int(value)
        except ValueError:
            raise ValueError(f"invalid integer value for {key}: {value}") from None
    elif field == "show_binary":
        if value not in ("true", "false"):
            raise ValueError(f"invalid boolean value for {key}: {value} (must be 'true' or 'false')")
        parsed = value == "true"
    else:
        parsed = value

    data = config.model_dump()
    data[field] = parsed
    try:
        return RemConfig(**data)
    except ValidationError as e:
        raise ValueError(f"invalid value for {key}: {value}") from e


def list_values(config: RemConfig) -> dict[str, str]:
    return {key: get_value(config, key) for key in CONFIG_KEYS}
