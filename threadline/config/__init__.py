"""Configuration module for threadline."""

from threadline.config.loader import get_config_path, load_config, save_config
from threadline.config.schema import Config, ContextConfig, IdentityConfig, StoreConfig

__all__ = [
    "Config",
    "ContextConfig",
    "IdentityConfig",
    "StoreConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
