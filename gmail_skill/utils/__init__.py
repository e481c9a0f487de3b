"""Utility functions for gmail-skill."""

from gmail_skill.utils.helpers import ensure_private_dir

__all__ = ["ensure_private_dir"]
