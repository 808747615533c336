# src/__init__.py - v1
"""compforge: UI component registry client, cache and batch installer."""

from compforge.version import __version__

__all__ = ["__version__"]
