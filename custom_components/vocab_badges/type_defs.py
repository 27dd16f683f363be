"""Type definitions for Vocab Badges data structures.

TypedDicts describe the JSON-compatible shapes persisted in the per-user
Store blobs and passed between engines and managers. Keys match the
DATA_* constants in const.py.

IMPORTANT: This file must NOT import from managers or engines to avoid
circular dependencies. Only import from typing (type machinery).

NOTE: TypedDict is STATIC ANALYSIS ONLY. All runtime defaulting (.get()
fallbacks, missing rows) is done by the engines.
"""

from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str
BadgeId = str
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"


# =============================================================================
# Inbound Events
# =============================================================================


class BadgeEvent(TypedDict):
    """A raw user-behavior event pushed by the vocabulary app."""

    type: str  # One of const.BADGE_EVENT_TYPES
    user_id: UserId
    timestamp: ISODatetime
    data: NotRequired[dict[str, Any]]


# =============================================================================
# Behavior Aggregate
# =============================================================================


class DailyStat(TypedDict):
    """Activity counters for a single local calendar day."""

    date: ISODate
    words_collected: int
    reviews_completed: int
    learning_time: float
    checkins: int
    words_contributed: int
    showlists_created: int


class StreakEntry(TypedDict):
    """Running streak for one streak type."""

    type: str  # "daily_checkin", "learning", "review"
    current_streak: int
    longest_streak: int
    last_break_date: ISODate | None


class BehaviorAggregate(TypedDict):
    """Per-user rolling totals, folded from events by BehaviorEngine.update().

    Stored in: vocab_badges.behavior.<user_id>
    """

    user_id: UserId
    words_collected: int
    review_sessions_completed: int
    daily_checkin_streak: int
    words_contributed: int
    learning_time_hours: float
    showlist_created: int
    last_activity_date: ISODatetime | None
    last_checkin_date: ISODate | None
    daily_stats: list[DailyStat]
    streak_data: list[StreakEntry]


# =============================================================================
# Evaluation / Progress
# =============================================================================


class UnlockResult(TypedDict):
    """Outcome of evaluating one rule against an aggregate (not persisted)."""

    badge_id: BadgeId
    unlocked: bool
    progress: float
    target: float
    unlock_date: ISODatetime | None
    reason: str
    evaluation_failed: NotRequired[bool]


class UserBadgeProgress(TypedDict):
    """Persisted per-badge lifecycle row.

    Stored in: vocab_badges.progress.<user_id> (list of rows)
    Managed by: ProgressManager (merge, open chest, persist)
    """

    user_id: UserId
    badge_id: BadgeId
    unlocked: bool
    progress: float
    target: float
    unlocked_at: ISODatetime | None
    status: str  # "locked", "ready_to_unlock", "unlocked"
    has_been_opened: bool


class HistoryEntry(TypedDict):
    """A single unlock-history record (append-only, FIFO capped)."""

    badge_id: BadgeId
    progress: float
    target: float
    reason: str
    unlock_date: ISODatetime


class BadgeSummary(TypedDict):
    """Aggregate view over a user's progress rows."""

    total_badges: int
    unlocked_badges: int
    ready_to_unlock: int
    locked_badges: int
    progress_percentage: int
    recent_unlocks: list[HistoryEntry]
    next_badge: UserBadgeProgress | None


class BadgeDefinition(TypedDict):
    """Display metadata for one badge, as returned by get_badge_definitions."""

    id: BadgeId
    category: str
    icon: str
    condition: str
    metric: str
    target: float
    priority: int
    name_key: str
    description_key: str
    locale: str


class UserDataExport(TypedDict):
    """Backup payload produced by BadgeManager.async_export_user_data()."""

    user_id: UserId
    export_date: ISODatetime
    behavior: BehaviorAggregate | None
    progress: list[UserBadgeProgress]
    history: list[HistoryEntry]


# =============================================================================
# Event Payload Types (Manager-to-Manager Communication)
# =============================================================================


class BadgeReadyEvent(TypedDict):
    """Event payload for SIGNAL_SUFFIX_BADGE_READY.

    Emitted by: BadgeManager after a batch update marks a badge ready
    Consumed by: NotificationManager
    """

    user_id: UserId
    badge_id: BadgeId
    progress: float
    target: float
    reason: str
    unlock_date: ISODatetime | None


class BadgeOpenedEvent(TypedDict):
    """Event payload for SIGNAL_SUFFIX_BADGE_OPENED."""

    user_id: UserId
    badge_id: BadgeId
    unlocked_at: ISODatetime | None
