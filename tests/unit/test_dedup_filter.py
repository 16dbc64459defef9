"""
Tests for the Dedup Filter
==========================

Publish date parsing and selection of items newer than a checkpoint.
"""

from datetime import datetime, timezone, timedelta

import pytest

from feedposter.database.models import DatedItem, FeedItem
from feedposter.processing.dedup_filter import (
    parse_pub_date,
    select_new_items,
    latest_timestamp,
)
from feedposter.utils.exceptions import DateParseError, ErrorCode

from conftest import T0, make_item


class TestParsePubDate:
    """Feed-native date parsing."""

    def test_rfc822_gmt(self):
        assert parse_pub_date("Fri, 01 Mar 2024 12:00:00 GMT") == T0

    def test_rfc822_numeric_offset(self):
        assert parse_pub_date("Fri, 01 Mar 2024 14:00:00 +0200") == T0

    def test_us_timezone_abbreviation(self):
        assert parse_pub_date("Fri, 01 Mar 2024 07:00:00 EST") == T0

    def test_iso8601(self):
        assert parse_pub_date("2024-03-01T12:00:00Z") == T0

    def test_naive_date_is_utc(self):
        result = parse_pub_date("2024-03-01 12:00:00")

        assert result == T0
        assert result.tzinfo is not None

    def test_result_is_normalized_to_utc(self):
        result = parse_pub_date("2024-03-01T09:00:00-03:00")

        assert result.utcoffset() == timedelta(0)
        assert result == T0

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_date(self, raw):
        with pytest.raises(DateParseError) as exc_info:
            parse_pub_date(raw)

        assert exc_info.value.error_code == ErrorCode.ITEM_DATE_INVALID

    def test_unparsable_date(self):
        with pytest.raises(DateParseError) as exc_info:
            parse_pub_date("not a date at all", item_title="Broken")

        assert exc_info.value.context["raw_value"] == "not a date at all"
        assert exc_info.value.context["item_title"] == "Broken"

    def test_fractional_seconds_are_truncated(self):
        result = parse_pub_date("2024-03-01T12:00:00.500Z")

        assert result == T0
        assert result.microsecond == 0

    def test_date_outside_utc_range_is_a_parse_error(self):
        with pytest.raises(DateParseError) as exc_info:
            parse_pub_date("0001-01-01T00:00:00+01:00", item_title="Ancient")

        assert exc_info.value.context["raw_value"] == "0001-01-01T00:00:00+01:00"


class TestSelectNewItems:
    """Checkpoint-based selection."""

    def test_without_checkpoint_everything_is_new(self, sample_document):
        result = select_new_items(sample_document.items, None)

        assert len(result.new_items) == 3
        assert result.errors == []

    def test_only_items_strictly_after_checkpoint(self, sample_document):
        result = select_new_items(sample_document.items, T0)

        assert [d.item.title for d in result.new_items] == ["Python 3.13 lands", "Gardening tips"]

    def test_item_at_checkpoint_is_not_new(self):
        result = select_new_items([make_item("Same second", published=T0)], T0)

        assert result.new_items == []

    def test_sub_second_item_within_checkpoint_second_is_not_new(self):
        result = select_new_items([make_item("Half past", published="2024-03-01T12:00:00.500Z")], T0)

        assert result.new_items == []

    def test_out_of_range_date_is_reported_not_fatal(self):
        items = [
            make_item("Ancient", published="0001-01-01T00:00:00+01:00"),
            make_item("Good", published=T0 + timedelta(minutes=1)),
        ]

        result = select_new_items(items, T0)

        assert [d.item.title for d in result.new_items] == ["Good"]
        assert len(result.errors) == 1

    def test_input_order_is_preserved(self):
        items = [
            make_item("Second", published=T0 + timedelta(minutes=2)),
            make_item("First", published=T0 + timedelta(minutes=1)),
        ]

        result = select_new_items(items, T0)

        assert [d.item.title for d in result.new_items] == ["Second", "First"]

    def test_unparsable_dates_are_reported_not_fatal(self):
        items = [
            make_item("Good", published=T0 + timedelta(minutes=1)),
            FeedItem(title="No date", pub_date=None),
            FeedItem(title="Garbage date", pub_date="yesterday-ish"),
        ]

        result = select_new_items(items, T0)

        assert [d.item.title for d in result.new_items] == ["Good"]
        assert len(result.errors) == 2
        assert all(isinstance(e, DateParseError) for e in result.errors)

    def test_comparison_across_timezones(self):
        # 12:30 at +01:00 is 11:30 UTC, before the checkpoint
        item = make_item("Earlier", published="Fri, 01 Mar 2024 12:30:00 +0100")

        assert select_new_items([item], T0).new_items == []

    def test_naive_checkpoint_is_treated_as_utc(self):
        item = make_item("Later", published=T0 + timedelta(seconds=1))

        result = select_new_items([item], datetime(2024, 3, 1, 12, 0, 0))

        assert len(result.new_items) == 1

    def test_newest_property(self, sample_document):
        result = select_new_items(sample_document.items, T0)

        assert result.newest == T0 + timedelta(hours=2)


class TestLatestTimestamp:

    def test_empty(self):
        assert latest_timestamp([]) is None

    def test_picks_maximum_regardless_of_order(self):
        items = [
            DatedItem(item=make_item("b"), published_at=T0 + timedelta(hours=3)),
            DatedItem(item=make_item("a"), published_at=T0),
            DatedItem(item=make_item("c"), published_at=T0 + timedelta(hours=1)),
        ]

        assert latest_timestamp(items) == T0 + timedelta(hours=3)

    def test_dated_item_naive_time_becomes_utc(self):
        dated = DatedItem(item=make_item("a"), published_at=datetime(2024, 3, 1, 12, 0, 0))

        assert dated.published_at == T0
        assert dated.published_at.tzinfo == timezone.utc
