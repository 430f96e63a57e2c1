"""Local JSON API for fintrack."""

from .app import create_app, load_config

__all__ = ["create_app", "load_config"]
