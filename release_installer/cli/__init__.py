# Path: release_installer/cli/__init__.py
"""Command-line interface for the release installer."""
