"""Behavior Engine - Pure logic for folding user events into aggregates.

This engine provides stateless, pure Python functions for:
- Creating an empty per-user behavior aggregate
- Applying one event to the aggregate (one counter, one daily bucket)
- Daily check-in streaks using local calendar-day adjacency
- Learning / review streaks derived from the daily buckets
- Pruning daily buckets outside the retention window

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
update() never mutates its input; it returns a new aggregate so a caller
can keep the previous value if persisting the new one fails.
"""

from __future__ import annotations

import copy
from datetime import date, datetime, timedelta
import math
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils import dt_utils

if TYPE_CHECKING:
    from ..type_defs import BadgeEvent, BehaviorAggregate, DailyStat, StreakEntry


class BadgeEventValidationError(Exception):
    """Raised when an event cannot be applied to a behavior aggregate.

    Attributes:
        event_type: The offending event type
    """

    def __init__(self, event_type: Any) -> None:
        """Initialize BadgeEventValidationError.

        Args:
            event_type: The offending event type
        """
        self.event_type = event_type
        super().__init__(const.ERROR_UNKNOWN_EVENT_TYPE_FMT.format(event_type))


class BehaviorEngine:
    """Pure logic engine for behavior aggregation.

    All methods are static or class methods - no instance state.

    Event -> (aggregate counter, daily bucket field):
        - word_collected: words_collected / words_collected
        - review_completed: review_sessions_completed / reviews_completed
        - daily_checkin: daily_checkin_streak (streak rule) / checkins
        - word_contributed: words_contributed / words_contributed
        - showlist_created: showlist_created / showlists_created
        - learning_time_updated: learning_time_hours / learning_time (+hours)
    """

    _EVENT_FIELDS: dict[str, tuple[str, str]] = {
        const.EVENT_WORD_COLLECTED: (
            const.DATA_WORDS_COLLECTED,
            const.DATA_DAILY_WORDS_COLLECTED,
        ),
        const.EVENT_REVIEW_COMPLETED: (
            const.DATA_REVIEW_SESSIONS_COMPLETED,
            const.DATA_DAILY_REVIEWS_COMPLETED,
        ),
        const.EVENT_DAILY_CHECKIN: (
            const.DATA_DAILY_CHECKIN_STREAK,
            const.DATA_DAILY_CHECKINS,
        ),
        const.EVENT_WORD_CONTRIBUTED: (
            const.DATA_WORDS_CONTRIBUTED,
            const.DATA_DAILY_WORDS_CONTRIBUTED,
        ),
        const.EVENT_SHOWLIST_CREATED: (
            const.DATA_SHOWLIST_CREATED,
            const.DATA_DAILY_SHOWLISTS_CREATED,
        ),
        const.EVENT_LEARNING_TIME_UPDATED: (
            const.DATA_LEARNING_TIME_HOURS,
            const.DATA_DAILY_LEARNING_TIME,
        ),
    }

    # Activity streaks tracked from daily buckets: event -> (streak type, field)
    _ACTIVITY_STREAKS: dict[str, tuple[str, str]] = {
        const.EVENT_WORD_COLLECTED: (
            const.STREAK_TYPE_LEARNING,
            const.DATA_DAILY_WORDS_COLLECTED,
        ),
        const.EVENT_REVIEW_COMPLETED: (
            const.STREAK_TYPE_REVIEW,
            const.DATA_DAILY_REVIEWS_COMPLETED,
        ),
    }

    # =========================================================================
    # Construction
    # =========================================================================

    @staticmethod
    def new_aggregate(user_id: str) -> BehaviorAggregate:
        """Return an empty aggregate for a user who has no events yet."""
        return {
            "user_id": user_id,
            "words_collected": 0,
            "review_sessions_completed": 0,
            "daily_checkin_streak": 0,
            "words_contributed": 0,
            "learning_time_hours": 0,
            "showlist_created": 0,
            "last_activity_date": None,
            "last_checkin_date": None,
            "daily_stats": [],
            "streak_data": [],
        }

    @staticmethod
    def new_daily_stat(day: date) -> DailyStat:
        """Return a zeroed bucket for a local calendar day."""
        return {
            "date": day.isoformat(),
            "words_collected": 0,
            "reviews_completed": 0,
            "learning_time": 0,
            "checkins": 0,
            "words_contributed": 0,
            "showlists_created": 0,
        }

    # =========================================================================
    # Update
    # =========================================================================

    @classmethod
    def update(
        cls,
        aggregate: BehaviorAggregate | None,
        event: BadgeEvent,
        now: datetime | None = None,
        retention_days: int = const.DEFAULT_DAILY_STATS_RETENTION_DAYS,
    ) -> BehaviorAggregate:
        """Apply one event and return the new aggregate.

        The event's own timestamp decides which local calendar day it counts
        for; `now` is only used when the event carries no usable timestamp.

        Args:
            aggregate: Current aggregate, or None for a user's first event
            event: The event to apply
            now: Fallback event time
            retention_days: Daily buckets older than this are dropped

        Returns:
            A new aggregate (the input is never mutated)

        Raises:
            BadgeEventValidationError: If the event type is unknown
        """
        event_type = event.get("type")
        fields = cls._EVENT_FIELDS.get(event_type)  # type: ignore[arg-type]
        if fields is None:
            raise BadgeEventValidationError(event_type)
        counter_field, daily_field = fields

        if aggregate is None:
            result = cls.new_aggregate(event.get("user_id", ""))
        else:
            result = copy.deepcopy(aggregate)

        event_time = (
            dt_utils.dt_parse(event.get("timestamp"))
            or now
            or dt_utils.dt_now_utc()
        )
        today = dt_utils.dt_local_date(event_time)
        data = event.get("data") or {}

        amount: float = 1
        if event_type == const.EVENT_LEARNING_TIME_UPDATED:
            amount = cls.parse_hours(data.get(const.EVENT_DATA_HOURS))

        bucket = cls._get_or_create_bucket(result, today)

        # Activity streaks look at buckets before this event is counted
        activity_streak = cls._ACTIVITY_STREAKS.get(event_type)
        if activity_streak is not None:
            streak_type, streak_field = activity_streak
            last_active = cls._last_active_day(
                result[const.DATA_DAILY_STATS], streak_field
            )
            entry = cls._get_or_create_streak(result, streak_type)
            cls._advance_streak(entry, last_active, today)

        if event_type == const.EVENT_DAILY_CHECKIN:
            cls._apply_checkin(result, today)
        else:
            result[counter_field] = (result.get(counter_field) or 0) + amount

        bucket[daily_field] = (bucket.get(daily_field) or 0) + amount
        result[const.DATA_LAST_ACTIVITY_DATE] = dt_utils.as_utc(event_time).isoformat()

        cls.prune_daily_stats(result, retention_days, reference_date=today)
        return result

    @staticmethod
    def parse_hours(raw: Any) -> float:
        """Return a learning-time increment; non-numeric or negative input is 0."""
        if isinstance(raw, bool):
            return 0
        if isinstance(raw, str):
            try:
                raw = float(raw)
            except ValueError:
                return 0
        if not isinstance(raw, (int, float)) or not math.isfinite(raw) or raw < 0:
            return 0
        return raw

    # =========================================================================
    # Streaks
    # =========================================================================

    @classmethod
    def _apply_checkin(cls, aggregate: BehaviorAggregate, today: date) -> None:
        """Apply the daily check-in streak rule.

        Previous check-in yesterday: +1. Same day (or a late event for an
        earlier day): unchanged. Anything else: reset to 1.
        """
        last_checkin = dt_utils.dt_parse_date(
            aggregate.get(const.DATA_LAST_CHECKIN_DATE)
        )
        entry = cls._get_or_create_streak(aggregate, const.STREAK_TYPE_DAILY_CHECKIN)
        entry[const.DATA_STREAK_CURRENT] = aggregate.get(
            const.DATA_DAILY_CHECKIN_STREAK, 0
        )
        cls._advance_streak(entry, last_checkin, today)

        aggregate[const.DATA_DAILY_CHECKIN_STREAK] = entry[const.DATA_STREAK_CURRENT]
        if last_checkin is None or today > last_checkin:
            aggregate[const.DATA_LAST_CHECKIN_DATE] = today.isoformat()

    @staticmethod
    def _advance_streak(
        entry: StreakEntry, last_day: date | None, today: date
    ) -> None:
        """Advance a streak entry in place for activity on `today`."""
        current = entry.get(const.DATA_STREAK_CURRENT) or 0

        if last_day is not None and today <= last_day:
            return  # Already counted for this day

        if last_day is not None and dt_utils.dt_days_between(last_day, today) == 1:
            current += 1
        else:
            if current > 0:
                entry[const.DATA_STREAK_LAST_BREAK_DATE] = today.isoformat()
            current = 1

        entry[const.DATA_STREAK_CURRENT] = current
        if current > (entry.get(const.DATA_STREAK_LONGEST) or 0):
            entry[const.DATA_STREAK_LONGEST] = current

    @staticmethod
    def _last_active_day(daily_stats: list[DailyStat], field: str) -> date | None:
        """Return the latest day with activity in `field`.

        A late event for an earlier day then leaves the streak unchanged.
        """
        latest: date | None = None
        for stat in daily_stats:
            if not stat.get(field):
                continue
            day = dt_utils.dt_parse_date(stat.get(const.DATA_DAILY_DATE))
            if day is None:
                continue
            if latest is None or day > latest:
                latest = day
        return latest

    @staticmethod
    def _get_or_create_streak(
        aggregate: BehaviorAggregate, streak_type: str
    ) -> StreakEntry:
        streak_data = aggregate.setdefault(const.DATA_STREAK_DATA, [])
        for existing in streak_data:
            if existing.get(const.DATA_STREAK_TYPE) == streak_type:
                return existing
        entry: StreakEntry = {
            "type": streak_type,
            "current_streak": 0,
            "longest_streak": 0,
            "last_break_date": None,
        }
        streak_data.append(entry)
        return entry

    # =========================================================================
    # Daily buckets
    # =========================================================================

    @classmethod
    def _get_or_create_bucket(
        cls, aggregate: BehaviorAggregate, day: date
    ) -> DailyStat:
        """Return the bucket for `day`, creating it in date order if missing."""
        daily_stats = aggregate.setdefault(const.DATA_DAILY_STATS, [])
        day_iso = day.isoformat()
        for stat in daily_stats:
            if stat.get(const.DATA_DAILY_DATE) == day_iso:
                return stat

        bucket = cls.new_daily_stat(day)
        daily_stats.append(bucket)
        daily_stats.sort(key=lambda stat: stat.get(const.DATA_DAILY_DATE, ""))
        return bucket

    @staticmethod
    def prune_daily_stats(
        aggregate: BehaviorAggregate,
        retention_days: int,
        reference_date: date | None = None,
    ) -> int:
        """Drop daily buckets older than the retention window.

        Mutates `aggregate` in place.

        Returns:
            Number of buckets removed
        """
        if retention_days <= 0:
            return 0
        today = reference_date or dt_utils.dt_today_local()
        cutoff = (today - timedelta(days=retention_days)).isoformat()

        daily_stats = aggregate.get(const.DATA_DAILY_STATS) or []
        kept = [s for s in daily_stats if s.get(const.DATA_DAILY_DATE, "") >= cutoff]
        pruned = len(daily_stats) - len(kept)
        if pruned:
            aggregate[const.DATA_DAILY_STATS] = kept
            const.LOGGER.debug(
                "DEBUG: Pruned %d daily stat buckets older than %s", pruned, cutoff
            )
        return pruned
