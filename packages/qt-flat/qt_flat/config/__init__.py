"""Configuration module for the flat indexer."""

from .settings import ATTRIBUTES_CHUNK_SIZE, Settings, get_settings

__all__ = ["ATTRIBUTES_CHUNK_SIZE", "Settings", "get_settings"]
