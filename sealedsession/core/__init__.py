"""
Core module - Contains configuration, logging, and the session core.
"""

from sealedsession.core.config import SessionConfig
from sealedsession.core.logging import SecureLogFilter, configure_logging, get_secure_logger

__all__ = ["SessionConfig", "SecureLogFilter", "configure_logging", "get_secure_logger"]
