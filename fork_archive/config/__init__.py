"""
Configuration — Archive settings from the environment.
"""

from .loader import ArchiveSettings, ConfigurationError, load_settings

__all__ = ["ArchiveSettings", "ConfigurationError", "load_settings"]
