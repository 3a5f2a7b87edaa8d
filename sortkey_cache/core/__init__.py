"""Core: settings, cache options, and shared constants."""

from sortkey_cache.core.config import CacheOptions, DeletePolicy, Settings, get_settings

__all__ = ["CacheOptions", "DeletePolicy", "Settings", "get_settings"]
