"""Tests for core domain models."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from eavlog.core.models import Event, QueryFilter, StorageKind, to_unix_seconds

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestStorageKind:
    """Tests for the StorageKind enumeration."""

    def test_codes_are_fixed(self) -> None:
        assert [(k.label, int(k)) for k in StorageKind] == [
            ("real", 0),
            ("text", 1),
            ("blob", 2),
            ("json", 3),
        ]


class TestEvent:
    """Tests for Event."""

    def test_event_is_frozen(self) -> None:
        event = Event(id=1, timestamp=1000.0, level="INFO")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.level = "DEBUG"  # type: ignore[misc]

    def test_defaults(self) -> None:
        event = Event(id=1, timestamp=1000.0, level="INFO")
        assert event.session is None
        assert event.attributes == {}


class TestToUnixSeconds:
    """Tests for to_unix_seconds()."""

    def test_float_passes_through(self) -> None:
        assert to_unix_seconds(12.5) == 12.5

    def test_aware_datetime(self) -> None:
        moment = datetime(2000, 1, 1, tzinfo=timezone(timedelta(hours=1)))
        assert to_unix_seconds(moment) == 946681200.0

    def test_naive_datetime_is_utc(self) -> None:
        assert to_unix_seconds(datetime(2000, 1, 1)) == 946684800.0


class TestQueryFilter:
    """Tests for QueryFilter construction."""

    def test_empty_filter_imposes_nothing(self) -> None:
        f = QueryFilter()
        assert f.level is None
        assert f.session is None
        assert f.since is None
        assert f.until is None
        assert f.selected_names == frozenset()
        assert dict(f.value_filters) == {}

    def test_keyword_construction_normalizes(self) -> None:
        f = QueryFilter(
            since=datetime(2000, 1, 1),
            selected_names=["foo", "bar"],
            value_filters={"foo": "bar"},
        )
        assert f.since == 946684800.0
        assert f.selected_names == frozenset({"foo", "bar"})
        assert dict(f.value_filters) == {"foo": "bar"}

    def test_value_filters_are_read_only(self) -> None:
        source = {"foo": "bar"}
        f = QueryFilter(value_filters=source)
        source["baz"] = 42

        assert dict(f.value_filters) == {"foo": "bar"}
        with pytest.raises(TypeError):
            f.value_filters["baz"] = 42  # type: ignore[index]

    def test_builders_return_new_filters(self) -> None:
        base = QueryFilter()
        f = base.with_level("DEBUG").with_session("A").with_since(10).with_until(20)

        assert base == QueryFilter()
        assert (f.level, f.session, f.since, f.until) == ("DEBUG", "A", 10.0, 20.0)

    def test_selected_names_accumulate(self) -> None:
        f = QueryFilter().with_selected_names("foo").with_selected_names("bar", "baz")
        assert f.selected_names == frozenset({"foo", "bar", "baz"})

    def test_value_filters_merge(self) -> None:
        f = (
            QueryFilter()
            .with_value_filters({"foo": "bar", "baz": 1})
            .with_value_filters({"baz": 42})
        )
        assert dict(f.value_filters) == {"foo": "bar", "baz": 42}
