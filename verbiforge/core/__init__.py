"""
Core module - Contains configuration, logging, errors and the file store.
"""

from verbiforge.core.config import StoreConfig
from verbiforge.core.logging import configure_logging, SecureLogFilter

__all__ = ["StoreConfig", "configure_logging", "SecureLogFilter"]
