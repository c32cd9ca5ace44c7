"""LexBates - Offline-first Bates numbering and exhibit labeling for litigation matters.

Keeps a collision-free Bates registry per numbering configuration and stamps labels
onto produced documents.
"""

__version__ = "0.1.0"
__author__ = "LexBates Contributors"

from lexbates.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
