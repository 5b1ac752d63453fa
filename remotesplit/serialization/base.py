"""
Base serialization classes for the sibling wire format.
"""

import pickle
from abc import ABC, abstractmethod
from typing import Any

import cloudpickle

from ..core.exceptions import SerializationError


class Serializer(ABC):
    """Base class for data serializers."""

    @abstractmethod
    def serialize(self, data: Any) -> bytes:
        """Serialize data to bytes."""
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to data."""
        pass


class PickleSerializer(Serializer):
    """
    Pickle-based serializer.

    Uses cloudpickle so that lambdas and locally defined callables passed as
    arguments survive the trip to a sibling.
    """

    def serialize(self, data: Any) -> bytes:
        """Serialize data to pickle bytes."""
        try:
            return cloudpickle.dumps(data)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Pickle serialization failed: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        """Deserialize pickle bytes to data."""
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, TypeError, ValueError, EOFError, AttributeError, ImportError) as e:
            raise SerializationError(f"Pickle deserialization failed: {e}") from e
