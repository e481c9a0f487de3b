"""CLI module for gmail-skill."""
