"""
Per-instance store of objects returned by reference.
"""

import itertools
import logging
import uuid
from collections import OrderedDict
from typing import Any, Optional

from ..core.exceptions import ResolutionError
from .wire import RemoteReference

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024


class ReferenceStore:
    """
    Maps reference ids to live objects for one sibling instance.

    Ids come from a counter and are never reused. The store holds at most
    ``capacity`` objects; minting past that evicts the least recently used
    one, after which its id is dangling.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Invalid reference store capacity: {capacity}")
        self.capacity = capacity
        self.store_id = uuid.uuid4().hex
        self._objects: "OrderedDict[int, Any]" = OrderedDict()
        self._ids = itertools.count()

    def mint(self, obj: Any) -> RemoteReference:
        ref_id = next(self._ids)
        self._objects[ref_id] = obj
        if len(self._objects) > self.capacity:
            evicted, _ = self._objects.popitem(last=False)
            logger.debug(f"Reference store {self.store_id} full, evicted reference {evicted}")
        return RemoteReference(ref_id=ref_id, store_id=self.store_id)

    def get(self, ref_id: int, store_id: Optional[str] = None) -> Any:
        if store_id is not None and store_id != self.store_id:
            raise ResolutionError(f"Reference {ref_id} belongs to another sibling instance")
        try:
            obj = self._objects[ref_id]
        except (KeyError, TypeError):
            raise ResolutionError(f"Dangling reference id: {ref_id}") from None
        self._objects.move_to_end(ref_id)
        return obj

    def owns(self, value: Any) -> bool:
        return isinstance(value, RemoteReference) and value.store_id == self.store_id

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, ref_id: int) -> bool:
        return ref_id in self._objects
