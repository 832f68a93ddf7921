"""
Configuration management for Rent Reclaim.

Loads and validates settings from environment variables and an optional
JSON config file. Exposes a single source of truth for every pipeline stage.
"""

from rent_reclaim.config.settings import ReclaimSettings, load_settings, write_example_config

__all__ = ["ReclaimSettings", "load_settings", "write_example_config"]
