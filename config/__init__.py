"""Configuration management for the authentication core."""

from .config import (
    SystemConfig, ZKPConfig, ECDHConfig, SessionConfig,
    load_config, save_config, config_from_dict, config_to_dict
)

__all__ = ['SystemConfig', 'ZKPConfig', 'ECDHConfig', 'SessionConfig',
           'load_config', 'save_config', 'config_from_dict', 'config_to_dict']
