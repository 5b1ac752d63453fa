"""
Serialization utilities for remotesplit.
"""

from .base import Serializer, PickleSerializer

__all__ = ["Serializer", "PickleSerializer"]
