"""Tests for BehaviorEngine - pure logic, no HA fixtures needed.

These tests validate event folding, calendar-day streaks (including
timezone and midnight edge cases) and daily bucket retention.
"""

from __future__ import annotations

import copy
from zoneinfo import ZoneInfo

import pytest

from custom_components.vocab_badges import const
from custom_components.vocab_badges.engines.behavior_engine import (
    BadgeEventValidationError,
    BehaviorEngine,
)
from custom_components.vocab_badges.utils import dt_utils
from tests.conftest import TEST_USER, create_aggregate, create_event

pytestmark = pytest.mark.usefixtures("utc_timezone")


def _apply(aggregate, *events):
    for event in events:
        aggregate = BehaviorEngine.update(aggregate, event)
    return aggregate


def _checkin(timestamp: str) -> dict:
    return create_event(const.EVENT_DAILY_CHECKIN, timestamp)


def _streak(aggregate: dict, streak_type: str) -> dict:
    return next(s for s in aggregate["streak_data"] if s["type"] == streak_type)


# =============================================================================
# TEST: COUNTERS AND BUCKETS
# =============================================================================


class TestCounters:
    """Each event increments exactly one counter and one bucket field."""

    def test_first_event_creates_aggregate(self) -> None:
        """A user's first event starts from an empty aggregate."""
        result = BehaviorEngine.update(
            None, create_event(const.EVENT_WORD_COLLECTED, "2026-03-01T10:00:00+00:00")
        )
        assert result["user_id"] == TEST_USER
        assert result["words_collected"] == 1
        assert result["review_sessions_completed"] == 0
        assert result["last_activity_date"] == "2026-03-01T10:00:00+00:00"
        assert result["daily_stats"] == [
            {
                "date": "2026-03-01",
                "words_collected": 1,
                "reviews_completed": 0,
                "learning_time": 0,
                "checkins": 0,
                "words_contributed": 0,
                "showlists_created": 0,
            }
        ]

    @pytest.mark.parametrize(
        ("event_type", "counter", "bucket_field"),
        [
            (const.EVENT_REVIEW_COMPLETED, "review_sessions_completed", "reviews_completed"),
            (const.EVENT_WORD_CONTRIBUTED, "words_contributed", "words_contributed"),
            (const.EVENT_SHOWLIST_CREATED, "showlist_created", "showlists_created"),
        ],
    )
    def test_event_counter_mapping(
        self, event_type: str, counter: str, bucket_field: str
    ) -> None:
        """Events land on their own counter and bucket field."""
        result = _apply(
            create_aggregate(),
            create_event(event_type, "2026-03-01T10:00:00+00:00"),
            create_event(event_type, "2026-03-01T11:00:00+00:00"),
        )
        assert result[counter] == 2
        assert result["daily_stats"][0][bucket_field] == 2
        assert result["words_collected"] == 0

    def test_learning_time_adds_hours(self) -> None:
        """learning_time_updated adds data.hours, accepting numeric strings."""
        result = _apply(
            create_aggregate(),
            create_event(
                const.EVENT_LEARNING_TIME_UPDATED,
                "2026-03-01T10:00:00+00:00",
                data={"hours": 1.5},
            ),
            create_event(
                const.EVENT_LEARNING_TIME_UPDATED,
                "2026-03-01T12:00:00+00:00",
                data={"hours": "0.25"},
            ),
        )
        assert result["learning_time_hours"] == 1.75
        assert result["daily_stats"][0]["learning_time"] == 1.75

    @pytest.mark.parametrize("raw", [None, "abc", -2, True, float("nan")])
    def test_invalid_hours_add_nothing(self, raw) -> None:
        """Missing, negative or non-numeric hours count as zero."""
        assert BehaviorEngine.parse_hours(raw) == 0

    def test_unknown_event_type_raises(self) -> None:
        """Unknown event types are rejected without touching the aggregate."""
        aggregate = create_aggregate(words_collected=3)
        with pytest.raises(BadgeEventValidationError) as exc_info:
            BehaviorEngine.update(
                aggregate, create_event("word_forgotten", "2026-03-01T10:00:00+00:00")
            )
        assert exc_info.value.event_type == "word_forgotten"
        assert aggregate["words_collected"] == 3

    def test_input_is_not_mutated(self) -> None:
        """update() returns a new aggregate and leaves the input alone."""
        aggregate = _apply(
            create_aggregate(),
            _checkin("2026-03-01T10:00:00+00:00"),
        )
        snapshot = copy.deepcopy(aggregate)

        updated = _apply(
            aggregate,
            _checkin("2026-03-02T10:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-02T10:00:00+00:00"),
        )

        assert aggregate == snapshot
        assert updated["daily_checkin_streak"] == 2

    def test_missing_timestamp_uses_now(self) -> None:
        """Events without a usable timestamp count for `now`."""
        now = dt_utils.dt_parse("2026-05-05T08:00:00+00:00")
        result = BehaviorEngine.update(
            create_aggregate(),
            {"type": const.EVENT_WORD_COLLECTED, "user_id": TEST_USER, "timestamp": ""},
            now=now,
        )
        assert result["daily_stats"][0]["date"] == "2026-05-05"


# =============================================================================
# TEST: DAILY CHECK-IN STREAK
# =============================================================================


class TestCheckinStreak:
    """Check-in streaks use local calendar-day adjacency."""

    def test_first_checkin_starts_streak(self) -> None:
        """The first check-in sets the streak to one."""
        result = _apply(create_aggregate(), _checkin("2026-03-01T10:00:00+00:00"))
        assert result["daily_checkin_streak"] == 1
        assert result["last_checkin_date"] == "2026-03-01"
        entry = _streak(result, const.STREAK_TYPE_DAILY_CHECKIN)
        assert entry["current_streak"] == 1
        assert entry["longest_streak"] == 1
        assert entry["last_break_date"] is None

    def test_consecutive_days_increment(self) -> None:
        """A check-in the day after the last one extends the streak."""
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T10:00:00+00:00"),
            _checkin("2026-03-02T09:00:00+00:00"),
            _checkin("2026-03-03T22:00:00+00:00"),
        )
        assert result["daily_checkin_streak"] == 3
        assert _streak(result, const.STREAK_TYPE_DAILY_CHECKIN)["longest_streak"] == 3

    def test_same_day_checkin_is_idempotent(self) -> None:
        """A second check-in on the same day leaves the streak unchanged."""
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T08:00:00+00:00"),
            _checkin("2026-03-01T20:00:00+00:00"),
        )
        assert result["daily_checkin_streak"] == 1
        assert result["daily_stats"][0]["checkins"] == 2

    def test_gap_resets_streak(self) -> None:
        """Missing a day resets to one and records the break."""
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T10:00:00+00:00"),
            _checkin("2026-03-02T10:00:00+00:00"),
            _checkin("2026-03-05T10:00:00+00:00"),
        )
        assert result["daily_checkin_streak"] == 1
        assert result["last_checkin_date"] == "2026-03-05"
        entry = _streak(result, const.STREAK_TYPE_DAILY_CHECKIN)
        assert entry["longest_streak"] == 2
        assert entry["last_break_date"] == "2026-03-05"

    def test_late_event_for_earlier_day(self) -> None:
        """An out-of-order check-in does not move the streak or the last date."""
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T10:00:00+00:00"),
            _checkin("2026-03-02T10:00:00+00:00"),
            _checkin("2026-02-27T10:00:00+00:00"),
        )
        assert result["daily_checkin_streak"] == 2
        assert result["last_checkin_date"] == "2026-03-02"
        assert [s["date"] for s in result["daily_stats"]] == [
            "2026-02-27",
            "2026-03-01",
            "2026-03-02",
        ]

    def test_legacy_js_date_string(self) -> None:
        """A stored toDateString() value is still understood."""
        aggregate = create_aggregate(
            daily_checkin_streak=4, last_checkin_date="Sat Feb 28 2026"
        )
        result = _apply(aggregate, _checkin("2026-03-01T10:00:00+00:00"))
        assert result["daily_checkin_streak"] == 5

    def test_midnight_in_local_timezone(self) -> None:
        """23:59 and 00:01 local are consecutive days even on one UTC date."""
        dt_utils.set_default_timezone(ZoneInfo("Asia/Tokyo"))
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T14:59:00+00:00"),  # 23:59 JST Mar 1
            _checkin("2026-03-01T15:01:00+00:00"),  # 00:01 JST Mar 2
        )
        assert result["daily_checkin_streak"] == 2
        assert result["last_checkin_date"] == "2026-03-02"

    def test_same_local_day_across_utc_dates(self) -> None:
        """Two check-ins on one local day count once even across UTC midnight."""
        dt_utils.set_default_timezone(ZoneInfo("America/New_York"))
        result = _apply(
            create_aggregate(),
            _checkin("2026-03-01T22:00:00+00:00"),  # 17:00 EST Mar 1
            _checkin("2026-03-02T03:00:00+00:00"),  # 22:00 EST Mar 1
        )
        assert result["daily_checkin_streak"] == 1
        assert result["last_checkin_date"] == "2026-03-01"


# =============================================================================
# TEST: ACTIVITY STREAKS
# =============================================================================


class TestActivityStreaks:
    """Learning and review streaks follow the daily buckets."""

    def test_learning_streak_counts_active_days(self) -> None:
        """Collecting words on consecutive days builds a learning streak."""
        result = _apply(
            create_aggregate(),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-01T10:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-01T11:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-02T10:00:00+00:00"),
        )
        entry = _streak(result, const.STREAK_TYPE_LEARNING)
        assert entry["current_streak"] == 2
        assert entry["longest_streak"] == 2

    def test_review_streak_breaks_on_gap(self) -> None:
        """A day without reviews breaks the review streak."""
        result = _apply(
            create_aggregate(),
            create_event(const.EVENT_REVIEW_COMPLETED, "2026-03-01T10:00:00+00:00"),
            create_event(const.EVENT_REVIEW_COMPLETED, "2026-03-03T10:00:00+00:00"),
        )
        entry = _streak(result, const.STREAK_TYPE_REVIEW)
        assert entry["current_streak"] == 1
        assert entry["last_break_date"] == "2026-03-03"

    def test_late_event_leaves_learning_streak(self) -> None:
        """A backdated word is counted in its bucket without touching the streak."""
        result = _apply(
            create_aggregate(),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-02T10:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-03T10:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-04T10:00:00+00:00"),
            create_event(const.EVENT_WORD_COLLECTED, "2026-02-20T10:00:00+00:00"),
        )
        entry = _streak(result, const.STREAK_TYPE_LEARNING)
        assert entry["current_streak"] == 3
        assert entry["longest_streak"] == 3
        assert entry["last_break_date"] is None
        assert result["words_collected"] == 4

    def test_late_event_after_older_bucket_does_not_extend_streak(self) -> None:
        """A late review the day after an old review does not add to the run."""
        result = _apply(
            create_aggregate(),
            create_event(const.EVENT_REVIEW_COMPLETED, "2026-03-01T10:00:00+00:00"),
            create_event(const.EVENT_REVIEW_COMPLETED, "2026-03-05T10:00:00+00:00"),
            create_event(const.EVENT_REVIEW_COMPLETED, "2026-03-02T10:00:00+00:00"),
        )
        entry = _streak(result, const.STREAK_TYPE_REVIEW)
        assert entry["current_streak"] == 1
        assert entry["longest_streak"] == 1


# =============================================================================
# TEST: RETENTION
# =============================================================================


class TestRetention:
    """Daily buckets older than the retention window are dropped."""

    def test_old_buckets_pruned(self) -> None:
        """Buckets before the cutoff go, the boundary day stays."""
        aggregate = create_aggregate(
            daily_stats=[
                BehaviorEngine.new_daily_stat(dt_utils.dt_parse_date("2025-11-30")),
                BehaviorEngine.new_daily_stat(dt_utils.dt_parse_date("2025-12-01")),
            ]
        )
        result = BehaviorEngine.update(
            aggregate,
            create_event(const.EVENT_WORD_COLLECTED, "2026-03-01T10:00:00+00:00"),
            retention_days=90,
        )
        assert [s["date"] for s in result["daily_stats"]] == [
            "2025-12-01",
            "2026-03-01",
        ]

    def test_prune_returns_count(self) -> None:
        """prune_daily_stats reports how many buckets it removed."""
        aggregate = create_aggregate(
            daily_stats=[
                BehaviorEngine.new_daily_stat(dt_utils.dt_parse_date("2026-01-01")),
                BehaviorEngine.new_daily_stat(dt_utils.dt_parse_date("2026-02-25")),
            ]
        )
        removed = BehaviorEngine.prune_daily_stats(
            aggregate, 7, reference_date=dt_utils.dt_parse_date("2026-03-01")
        )
        assert removed == 1
        assert len(aggregate["daily_stats"]) == 1
