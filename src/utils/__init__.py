"""Utility functions for the flattening tools."""

from .logging import get_logger, set_verbosity
from .config import load_config
from .formatting import format_number

__all__ = ["get_logger", "set_verbosity", "load_config", "format_number"]
