"""
In-memory cache package.
"""
from .localization_cache import LocalizationCache

__all__ = ["LocalizationCache"]
