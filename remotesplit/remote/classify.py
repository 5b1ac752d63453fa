"""
Classification of sibling results into values copied across the unit boundary
and objects kept behind a remote reference.
"""

import datetime
import io
import re
from collections import Counter, OrderedDict, defaultdict, deque
from decimal import Decimal
from enum import Enum
from types import SimpleNamespace
from typing import Any

import numpy as np

from .references import ReferenceStore


class ValueKind(Enum):
    """Kinds of result, checked in declaration order."""
    NULL = "null"
    PRIMITIVE = "primitive"
    BINARY = "binary"
    CONTAINER = "container"
    RECORD = "record"
    OPAQUE = "opaque"


# Exact types only: subclasses (IntEnum, namedtuple, pandas.Timestamp, ...)
# belong to the wrapped package and may not unpickle in the main unit.
PRIMITIVE_TYPES = frozenset({bool, int, float, complex, str, Decimal})
BINARY_TYPES = frozenset({bytes, bytearray, memoryview, io.BytesIO, io.StringIO, np.ndarray})
CONTAINER_TYPES = frozenset({
    datetime.date,
    datetime.datetime,
    datetime.time,
    datetime.timedelta,
    re.Pattern,
    list,
    tuple,
    set,
    frozenset,
    deque,
    OrderedDict,
    Counter,
    defaultdict,
})
RECORD_TYPES = frozenset({dict, SimpleNamespace})


def classify(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL

    value_type = type(value)
    if value_type in PRIMITIVE_TYPES or isinstance(value, np.generic):
        return ValueKind.PRIMITIVE
    if value_type in BINARY_TYPES:
        return ValueKind.BINARY
    if value_type in CONTAINER_TYPES:
        return ValueKind.CONTAINER
    if value_type in RECORD_TYPES:
        return ValueKind.RECORD
    return ValueKind.OPAQUE


def is_plain(value: Any) -> bool:
    return classify(value) is not ValueKind.OPAQUE


def encode_result(value: Any, store: ReferenceStore) -> Any:
    """
    Prepare a result for the trip back to the main unit.

    Plain values are returned by value, containers and records with their
    members encoded recursively. Opaque objects are retained in ``store`` and
    replaced by a fresh :class:`RemoteReference`.
    """
    kind = classify(value)

    if kind is ValueKind.OPAQUE:
        return store.mint(value)

    if kind is ValueKind.BINARY and isinstance(value, memoryview):
        return value.tobytes()

    if kind is ValueKind.CONTAINER:
        value_type = type(value)
        if value_type is deque:
            return deque((encode_result(v, store) for v in value), maxlen=value.maxlen)
        if value_type in (list, tuple, set, frozenset):
            return value_type(encode_result(v, store) for v in value)
        if value_type is defaultdict:
            return {k: encode_result(v, store) for k, v in value.items()}
        if value_type in (OrderedDict, Counter):
            return value_type({k: encode_result(v, store) for k, v in value.items()})
        return value

    if kind is ValueKind.RECORD:
        if isinstance(value, SimpleNamespace):
            return SimpleNamespace(**{k: encode_result(v, store) for k, v in vars(value).items()})
        return {k: encode_result(v, store) for k, v in value.items()}

    return value
