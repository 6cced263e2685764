"""
Models — Value records passed between archive steps.
"""

from .repository import ForkRepository, SourceRepository, load_forks

__all__ = ["ForkRepository", "SourceRepository", "load_forks"]
