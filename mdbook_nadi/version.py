"""
mdbook-nadi Version Management - Centralized version for all components

This module provides a single source of truth for the mdbook-nadi version.
"""

# =============================================================================
# mdbook-nadi Version - Single Source of Truth
# =============================================================================

__version__ = "0.3.0"

# Semantic versioning components
VERSION_MAJOR = 0
VERSION_MINOR = 3
VERSION_PATCH = 0

# mdBook release the JSON protocol handling was written against
SUPPORTED_MDBOOK_VERSION = "0.4.40"


def get_version() -> str:
    """Get the current mdbook-nadi version string."""
    return __version__


def get_version_info() -> dict:
    """Get detailed version information."""
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "mdbook": SUPPORTED_MDBOOK_VERSION,
    }


def is_compatible_mdbook(version: str) -> bool:
    """Check that an mdBook version shares major.minor with the supported one."""
    expected = SUPPORTED_MDBOOK_VERSION.split(".")[:2]
    return version.strip().split(".")[:2] == expected
