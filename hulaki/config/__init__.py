"""Configuration for hulaki."""

from hulaki.config.settings import HulakiConfig, load_config

__all__ = ["HulakiConfig", "load_config"]
