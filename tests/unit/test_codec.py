"""Tests for value classification, encoding and decoding."""

import math
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from eavlog.core.codec import EncodedValue, classify, column_for, decode, encode
from eavlog.core.errors import DecodeValueError, EncodeValueError
from eavlog.core.models import StorageKind

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]

json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**53), max_value=2**53)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=12,
)


def _roundtrip(value: Any) -> Any:
    encoded = encode(value)
    return decode(
        encoded.kind, encoded.real_value, encoded.text_value, encoded.blob_value
    )


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            (42, StorageKind.REAL),
            (-1.5, StorageKind.REAL),
            (float("inf"), StorageKind.REAL),
            ("bar", StorageKind.TEXT),
            ("", StorageKind.TEXT),
            (b"\x00\xff", StorageKind.BLOB),
            (bytearray(b"ab"), StorageKind.BLOB),
            (memoryview(b"ab"), StorageKind.BLOB),
            ({"foo": "bar"}, StorageKind.JSON),
            ([1, 2, 3], StorageKind.JSON),
            (True, StorageKind.JSON),
            (None, StorageKind.JSON),
        ],
    )
    def test_classify(self, value: Any, kind: StorageKind) -> None:
        assert classify(value) is kind

    def test_booleans_are_not_numbers(self) -> None:
        """bool subclasses int but must keep its JSON identity."""
        assert classify(False) is StorageKind.JSON


class TestEncode:
    """Tests for encode()."""

    def test_real_is_stored_as_float(self) -> None:
        assert encode(42) == EncodedValue(StorageKind.REAL, real_value=42.0)

    def test_text_is_stored_unmodified(self) -> None:
        assert encode("bar") == EncodedValue(StorageKind.TEXT, text_value="bar")

    def test_blob_is_stored_as_bytes(self) -> None:
        encoded = encode(bytearray(b"\x01\x02"))
        assert encoded == EncodedValue(StorageKind.BLOB, blob_value=b"\x01\x02")
        assert isinstance(encoded.blob_value, bytes)

    def test_json_goes_to_blob_column(self) -> None:
        encoded = encode({"foo": "bar", "baz": 42})
        assert encoded.kind is StorageKind.JSON
        assert encoded.blob_value == b'{"foo":"bar","baz":42}'
        assert encoded.real_value is None
        assert encoded.text_value is None

    def test_payload_is_the_populated_column(self) -> None:
        assert encode(1.5).payload == 1.5
        assert encode("x").payload == "x"
        assert encode([1]).payload == b"[1]"

    def test_nan_raises(self) -> None:
        with pytest.raises(EncodeValueError, match="ratio"):
            encode(math.nan, "ratio")

    def test_integer_beyond_float_range_raises(self) -> None:
        with pytest.raises(EncodeValueError, match="count") as excinfo:
            encode(10**400, "count")
        assert isinstance(excinfo.value.__cause__, OverflowError)

    def test_unserializable_json_raises(self) -> None:
        with pytest.raises(EncodeValueError, match="tags"):
            encode({1, 2}, "tags")

    def test_column_for(self) -> None:
        assert column_for(StorageKind.REAL) == "real_value"
        assert column_for(StorageKind.TEXT) == "text_value"
        assert column_for(StorageKind.BLOB) == "blob_value"
        assert column_for(StorageKind.JSON) == "blob_value"


class TestDecode:
    """Tests for decode()."""

    @pytest.mark.parametrize(
        "kind", [StorageKind.REAL, StorageKind.TEXT, StorageKind.BLOB, StorageKind.JSON]
    )
    def test_missing_column_raises(self, kind: StorageKind) -> None:
        with pytest.raises(DecodeValueError):
            decode(kind, None, None, None)

    def test_value_in_wrong_column_raises(self) -> None:
        with pytest.raises(DecodeValueError, match="text_value"):
            decode(StorageKind.TEXT, 1.0, None, None)

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(DecodeValueError, match="unknown"):
            decode(9, 1.0, None, None)

    def test_corrupt_json_raises(self) -> None:
        with pytest.raises(DecodeValueError):
            decode(StorageKind.JSON, None, None, b"{not json")

    def test_accepts_plain_int_kind_codes(self) -> None:
        assert decode(1, None, "bar", None) == "bar"


class TestRoundTrip:
    """decode(encode(v)) == v for every storage kind."""

    def test_fraction_keeps_precision(self) -> None:
        assert _roundtrip(0.1 + 0.2) == 0.1 + 0.2

    def test_nested_value_keeps_order(self) -> None:
        value = {"z": 1, "a": [3, {"y": None, "b": True}], "m": "x"}

        result = _roundtrip(value)

        assert result == value
        assert list(result) == ["z", "a", "m"]
        assert list(result["a"][1]) == ["y", "b"]

    def test_bytes_are_exact(self) -> None:
        data = bytes(range(256))
        assert _roundtrip(data) == data

    @given(value=st.integers(min_value=-(2**53), max_value=2**53))
    def test_integers(self, value: int) -> None:
        assert _roundtrip(value) == value

    @given(value=st.floats(allow_nan=False))
    def test_floats(self, value: float) -> None:
        assert _roundtrip(value) == value

    @given(value=st.text())
    def test_text(self, value: str) -> None:
        assert _roundtrip(value) == value

    @given(value=st.binary())
    def test_binary(self, value: bytes) -> None:
        assert _roundtrip(value) == value

    @given(
        value=json_values.filter(
            lambda v: isinstance(v, (list, dict, bool)) or v is None
        )
    )
    def test_structured(self, value: Any) -> None:
        assert _roundtrip(value) == value
