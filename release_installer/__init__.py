# Path: release_installer/__init__.py
"""
Release Installer

Acquires, verifies and installs versioned toolchain releases from a
remote catalog, and reconciles that catalog with what is installed.
"""

__version__ = '0.1.0'
