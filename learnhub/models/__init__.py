"""
All database models. Imported here so Base.metadata sees them for create_all().
"""

from .material import Material

__all__ = ["Material"]
