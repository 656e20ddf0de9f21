"""
Persistence for the grouped document set.
"""

from .json_store import JSONStore

__all__ = ["JSONStore"]
