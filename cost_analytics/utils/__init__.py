"""
Utility modules for the cost analytics engine.
"""

from .logging import configure_logging, get_logger, setup_logging

__all__ = ["configure_logging", "get_logger", "setup_logging"]
