"""
Configuration module for the notification server.
"""

from server.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
