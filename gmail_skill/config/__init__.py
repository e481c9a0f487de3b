"""Configuration module for gmail-skill."""

from gmail_skill.config.loader import AuthConfig, get_config_dir, load_auth_config

__all__ = ["AuthConfig", "get_config_dir", "load_auth_config"]
