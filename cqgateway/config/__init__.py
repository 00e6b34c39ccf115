"""Configuration module for cqgateway."""

from cqgateway.config.loader import load_config, get_config_path, save_config
from cqgateway.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path", "save_config"]
