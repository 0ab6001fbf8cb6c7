# Path: release_installer/core/__init__.py
"""
Release Installer Core Module

Core utilities including configuration, logging, and data path management.
"""

from .config_loader import ConfigLoader, get_config
from .data_paths import DataPathsManager
from .logger import get_logger, configure_logging

__all__ = [
    'ConfigLoader',
    'get_config',
    'DataPathsManager',
    'get_logger',
    'configure_logging',
]
