"""Tests for property batch assembly."""

from datetime import UTC, datetime

from idpflows.mapping.batch import build_property_batch

NOW = datetime(2025, 3, 4, 5, 6, 7, 891000, tzinfo=UTC)


class TestBuildPropertyBatch:
    def test_resolved_only(self):
        assert build_property_batch({"a": "1"}) == {"a": "1"}

    def test_merges_extras(self):
        batch = build_property_batch({"a": "1"}, {"entra_groups": "x, y"})
        assert batch == {"a": "1", "entra_groups": "x, y"}

    def test_empty_extras_values_dropped(self):
        assert build_property_batch({"a": "1"}, {"entra_groups": ""}) == {"a": "1"}

    def test_empty_returns_none(self):
        assert build_property_batch({}) is None
        assert build_property_batch({}, {"entra_groups": ""}) is None

    def test_empty_with_timestamp_returns_none_by_default(self):
        assert build_property_batch({}, timestamp_key="last_sync", now=NOW) is None

    def test_timestamp_added_when_properties_changed(self):
        batch = build_property_batch({"a": "1"}, timestamp_key="last_sync", now=NOW)
        assert batch == {"a": "1", "last_sync": "2025-03-04T05:06:07.891Z"}

    def test_stamp_when_empty(self):
        batch = build_property_batch(
            {}, timestamp_key="last_sync", stamp_when_empty=True, now=NOW
        )
        assert batch == {"last_sync": "2025-03-04T05:06:07.891Z"}

    def test_stamp_when_empty_without_timestamp_key(self):
        assert build_property_batch({}, stamp_when_empty=True) is None

    def test_resolved_not_mutated(self):
        resolved = {"a": "1"}
        build_property_batch(resolved, {"b": "2"}, timestamp_key="ts", now=NOW)
        assert resolved == {"a": "1"}

    def test_default_timestamp_is_utc_iso(self):
        batch = build_property_batch({"a": "1"}, timestamp_key="ts")
        assert batch is not None
        assert batch["ts"].endswith("Z")
        assert len(batch["ts"]) == len("2025-03-04T05:06:07.891Z")
