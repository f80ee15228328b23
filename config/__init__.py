"""
Cross-Venue Runtime Configuration
"""
from .settings import RuntimeSettings, get_settings

__all__ = ["RuntimeSettings", "get_settings"]
