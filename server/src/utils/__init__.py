"""
Utility modules for the notification server.
"""

from server.src.utils.logging_config import get_logger, init_logging

__all__ = ["get_logger", "init_logging"]
