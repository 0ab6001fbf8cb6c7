# Path: install.py
"""
Release Installer - Main Entry Point

Run from the project root: python install.py

Architecture:
- Refresh the release catalog
- Interactive CLI for release selection
- Installation coordinator handles the workflow
- Bundles installed to the configured install directory

Usage:
    python install.py
    python install.py --list
    python install.py --install 15.0
"""

import asyncio
import sys

from release_installer.cli.install_cli import main


if __name__ == '__main__':
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\nInstallation cancelled by user.")
        sys.exit(130)
    except Exception as e:
        print(f"\nFatal error: {e}")
        sys.exit(1)
