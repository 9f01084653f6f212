"""Utility functions and helpers."""

from .logger import setup_logger, get_logger
from .config_loader import load_config, save_config
from .debug_log import DebugLogger

__all__ = [
    'setup_logger',
    'get_logger',
    'load_config',
    'save_config',
    'DebugLogger'
]
