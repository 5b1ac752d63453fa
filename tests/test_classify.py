"""
Tests for result classification, the reference store and the wire replies.
"""

import collections
import datetime
import enum
import re
from decimal import Decimal
from types import SimpleNamespace

import numpy as np
import pytest

from remotesplit.core.exceptions import (
    PathViolationError,
    ProtocolError,
    RemoteInvocationError,
    ResolutionError,
    SerializationError,
)
from remotesplit.remote import (
    ReferenceStore,
    RemoteReference,
    ValueKind,
    classify,
    encode_result,
    error_reply,
    is_plain,
    make_request,
    ok_reply,
    unwrap_reply,
)
from remotesplit.serialization import PickleSerializer


class Color(enum.IntEnum):
    RED = 1


Point = collections.namedtuple("Point", "x y")


class Widget:
    pass


class TestClassify:

    @pytest.mark.parametrize("value, kind", [
        (None, ValueKind.NULL),
        (True, ValueKind.PRIMITIVE),
        (3, ValueKind.PRIMITIVE),
        (2.5, ValueKind.PRIMITIVE),
        (1j, ValueKind.PRIMITIVE),
        ("text", ValueKind.PRIMITIVE),
        (Decimal("1.5"), ValueKind.PRIMITIVE),
        (np.float32(1.0), ValueKind.PRIMITIVE),
        (b"raw", ValueKind.BINARY),
        (bytearray(b"raw"), ValueKind.BINARY),
        (np.zeros(3), ValueKind.BINARY),
        ([1, 2], ValueKind.CONTAINER),
        ((1, 2), ValueKind.CONTAINER),
        ({1, 2}, ValueKind.CONTAINER),
        (datetime.date(2024, 1, 1), ValueKind.CONTAINER),
        (re.compile("x"), ValueKind.CONTAINER),
        (collections.deque([1]), ValueKind.CONTAINER),
        ({"a": 1}, ValueKind.RECORD),
        (SimpleNamespace(a=1), ValueKind.RECORD),
        (Widget(), ValueKind.OPAQUE),
        (Color.RED, ValueKind.OPAQUE),
        (Point(1, 2), ValueKind.OPAQUE),
        (len, ValueKind.OPAQUE),
    ])
    def test_kinds(self, value, kind):
        assert classify(value) is kind

    def test_is_plain(self):
        assert is_plain({"a": [1, 2]})
        assert not is_plain(Widget())


class TestEncodeResult:

    def test_plain_values_pass_through(self):
        store = ReferenceStore()
        array = np.arange(4)
        assert encode_result(array, store) is array
        assert encode_result("x", store) == "x"
        assert len(store) == 0

    def test_opaque_values_are_minted(self):
        store = ReferenceStore()
        widget = Widget()
        ref = encode_result(widget, store)

        assert isinstance(ref, RemoteReference)
        assert store.get(ref.ref_id) is widget

    def test_nested_opaque_values(self):
        store = ReferenceStore()
        encoded = encode_result({"items": [Widget(), 1], "pair": (Widget(),)}, store)

        assert isinstance(encoded["items"][0], RemoteReference)
        assert encoded["items"][1] == 1
        assert isinstance(encoded["pair"][0], RemoteReference)
        assert len(store) == 2

    def test_container_types_are_kept(self):
        store = ReferenceStore()
        counts = encode_result(collections.Counter({"a": 2}), store)
        ordered = encode_result(collections.OrderedDict(a=1), store)
        bounded = encode_result(collections.deque([1, 2], maxlen=2), store)
        defaults = encode_result(collections.defaultdict(list, a=[1]), store)

        assert type(counts) is collections.Counter and counts["a"] == 2
        assert type(ordered) is collections.OrderedDict
        assert bounded.maxlen == 2
        assert type(defaults) is dict and defaults == {"a": [1]}

    def test_memoryview_becomes_bytes(self):
        assert encode_result(memoryview(b"abc"), ReferenceStore()) == b"abc"

    def test_namespace_members_are_encoded(self):
        store = ReferenceStore()
        encoded = encode_result(SimpleNamespace(w=Widget(), n=1), store)
        assert isinstance(encoded.w, RemoteReference)
        assert encoded.n == 1


class TestReferenceStore:

    def test_ids_are_never_reused(self):
        store = ReferenceStore(capacity=1)
        ids = [store.mint(object()).ref_id for _ in range(3)]
        assert ids == [0, 1, 2]
        assert len(store) == 1

    def test_least_recently_used_is_evicted(self):
        store = ReferenceStore(capacity=2)
        a = store.mint("a")
        b = store.mint("b")
        store.get(a.ref_id)
        store.mint("c")

        assert a.ref_id in store
        assert b.ref_id not in store
        with pytest.raises(ResolutionError, match="Dangling reference id: 1"):
            store.get(b.ref_id)

    def test_store_identity(self):
        one, two = ReferenceStore(), ReferenceStore()
        ref = one.mint("x")

        assert one.owns(ref)
        assert not two.owns(ref)
        assert not one.owns("x")
        with pytest.raises(ResolutionError, match="another sibling instance"):
            two.get(ref.ref_id, ref.store_id)

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            ReferenceStore(capacity)


class TestReplies:

    def test_ok_reply(self):
        assert unwrap_reply(ok_reply([1, 2])) == [1, 2]

    def test_protocol_errors_keep_their_class(self):
        reply = error_reply(PathViolationError('Blocked path segment: "constructor"'))
        assert reply["error_type"] == "PathViolationError"
        assert reply["traceback"] is None
        with pytest.raises(PathViolationError, match="constructor"):
            unwrap_reply(reply)

    def test_package_errors_carry_the_traceback(self):
        try:
            raise KeyError("missing")
        except KeyError as e:
            reply = error_reply(e)

        assert reply["error_type"] == "RemoteInvocationError"
        with pytest.raises(RemoteInvocationError, match="KeyError") as exc_info:
            unwrap_reply(reply)
        assert "raise KeyError" in exc_info.value.remote_traceback

    def test_malformed_reply(self):
        with pytest.raises(ProtocolError, match="Malformed reply"):
            unwrap_reply({"result": 1})

    def test_request_shape(self):
        ref = RemoteReference(1, "s")
        assert make_request(["a", "b"], (1,), None, ref) == {
            "path": ("a", "b"),
            "args": [1],
            "kwargs": {},
            "target": ref,
        }


class TestSerializers:

    def test_pickle_round_trip_of_request(self):
        serializer = PickleSerializer()
        request = make_request(("f",), [np.arange(3)], {"k": RemoteReference(0, "s")})
        decoded = serializer.deserialize(serializer.serialize(request))

        assert decoded["path"] == ("f",)
        assert decoded["kwargs"]["k"] == RemoteReference(0, "s")
        np.testing.assert_array_equal(decoded["args"][0], np.arange(3))

    def test_pickle_garbage(self):
        with pytest.raises(SerializationError):
            PickleSerializer().deserialize(b"not a pickle")
