"""
mysql_persistence

Top-level package for generic MySQL persistence components.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; components are imported from `connect` and `persistence`.
