# Path: release_installer/engine/extraction/__init__.py
"""
Extraction Module

Archive expansion for release archives (.xip).
"""

from release_installer.engine.extraction.extractor import (
    XipExtractor,
    classify_expansion_failure,
    expansion_dir,
)

__all__ = [
    'XipExtractor',
    'classify_expansion_failure',
    'expansion_dir',
]
