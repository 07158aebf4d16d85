"""Configuration system for rem."""

from rem.config.loader import load_config, save_config
from rem.config.schema import RemConfig

__all__ = ["load_config", "save_config", "RemConfig"]
