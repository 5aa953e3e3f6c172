"""Tests for row grouping and timestamp normalization."""

from __future__ import annotations

import pytest

from convo_dispatch.pipeline import group_message_rows, normalize_ts_to_seconds, redact_row
from convo_dispatch.schemas import MessageRow


def _row(conv_id: str | None, ts: int | None, text: str = "hello", **kwargs) -> MessageRow:
    return MessageRow(conv_id=conv_id, message_text=text, modality="text", ts=ts, **kwargs)


class TestNormalizeTs:
    def test_none_is_none(self):
        assert normalize_ts_to_seconds(None) is None

    @pytest.mark.parametrize("ts", [0, 1_700_000_000, 10**12])
    def test_seconds_pass_through(self, ts):
        assert normalize_ts_to_seconds(ts) == ts

    @pytest.mark.parametrize("ts", [10**12 + 1, 1_700_000_000_999, 1_773_093_600_500])
    def test_milliseconds_are_floored_to_seconds(self, ts):
        assert normalize_ts_to_seconds(ts) == ts // 1000

    def test_float_milliseconds(self):
        assert normalize_ts_to_seconds(1_700_000_000_999.7) == 1_700_000_000


def test_redact_row_defaults_nullable_fields():
    message = redact_row(
        MessageRow(
            conv_id="c1",
            message_text="mail a@b.io",
            is_offensive=None,
            offense_type=None,
            modality="image",
            is_group=None,
            ts=1_700_000_000_123,
        )
    )
    assert message.message_text == "mail [EMAIL]"
    assert message.is_offensive is False
    assert message.offense_type == ""
    assert message.is_group is False
    assert message.modality == "image"
    assert message.ts == 1_700_000_000


def test_groups_keep_first_seen_key_order_and_message_order():
    rows = [
        _row("b", 3, "b1"),
        _row("b", 4, "b2"),
        _row("a", 1, "a1"),
        _row("c", 2, "c1"),
    ]
    groups = group_message_rows(rows)
    assert list(groups) == ["b", "a", "c"]
    assert [item.message_text for item in groups["b"]] == ["b1", "b2"]


def test_direct_variants_merge_into_one_conversation():
    rows = [
        _row("direct_A_1234@g.us", 100, "first"),
        _row("direct_A_1234@g.us", 300, "third"),
        _row("direct_B_1234@g.us", 200, "second"),
    ]
    groups = group_message_rows(rows)
    assert list(groups) == ["1234@g.us"]
    merged = groups["1234@g.us"]
    assert [item.ts for item in merged] == [100, 200, 300]
    assert [item.message_text for item in merged] == ["first", "second", "third"]


def test_merged_variants_with_disjoint_ranges_stay_in_timestamp_order():
    rows = [
        _row("direct_A_1234@g.us", 100, "first"),
        _row("direct_A_1234@g.us", 150, "second"),
        _row("direct_B_1234@g.us", 200, "third"),
    ]
    groups = group_message_rows(rows)
    assert [item.ts for item in groups["1234@g.us"]] == [100, 150, 200]


def test_mixed_second_and_millisecond_rows_sort_by_normalized_time():
    rows = [
        _row("b", 1_773_100_200, "later"),
        _row("b", 1_773_100_100_000, "earlier"),
    ]
    groups = group_message_rows(rows)
    assert [item.ts for item in groups["b"]] == [1_773_100_100, 1_773_100_200]
    assert [item.message_text for item in groups["b"]] == ["earlier", "later"]


def test_rows_without_timestamp_go_last_and_ties_keep_input_order():
    rows = [
        _row("a", None, "no-ts"),
        _row("a", 5, "tie-1"),
        _row("a", 2, "first"),
        _row("a", 5, "tie-2"),
    ]
    groups = group_message_rows(rows)
    assert [item.message_text for item in groups["a"]] == ["first", "tie-1", "tie-2", "no-ts"]


def test_missing_conv_id_goes_to_unknown():
    groups = group_message_rows([_row(None, 1), _row("", 2)])
    assert list(groups) == ["unknown"]
    assert len(groups["unknown"]) == 2


def test_disabled_key_normalization_keeps_variants_apart():
    rows = [_row("direct_A_1234@g.us", 1), _row("direct_B_1234@g.us", 2)]
    groups = group_message_rows(rows, normalize_keys=False)
    assert list(groups) == ["direct_A_1234@g.us", "direct_B_1234@g.us"]


def test_empty_rows_give_empty_mapping():
    assert group_message_rows([]) == {}
