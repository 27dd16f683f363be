"""Progress Engine - Pure logic for the per-badge lifecycle.

This engine provides stateless, pure Python functions for:
- Creating default (locked) progress rows
- Merging evaluation results into persisted rows
- The chest-opening transition (ready_to_unlock -> unlocked)
- Unlock-history append with FIFO eviction
- Summaries (totals, completion percentage, recent unlocks, next badge)

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions return new objects; inputs are never mutated.
State management belongs in ProgressManager.

Lifecycle:
    locked --(progress >= target)--> ready_to_unlock --(open chest)--> unlocked

Invariants kept by every function here:
    - status=unlocked => unlocked=True and has_been_opened=True
    - status=ready_to_unlock => progress >= target and unlocked=False
    - status=locked => progress < target
    - status never moves backwards
"""

from __future__ import annotations

import copy
from datetime import datetime
import math
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import (
        BadgeSummary,
        HistoryEntry,
        UnlockResult,
        UserBadgeProgress,
    )
    from .rule_engine import BadgeRule, RuleCatalog


class InvalidStateTransitionError(Exception):
    """Raised when a chest is opened from any status but ready_to_unlock.

    Attributes:
        user_id: Owner of the row
        badge_id: The badge whose chest was opened
        status: The row's status at the time of the attempt
    """

    def __init__(self, user_id: str, badge_id: str, status: str) -> None:
        """Initialize InvalidStateTransitionError."""
        self.user_id = user_id
        self.badge_id = badge_id
        self.status = status
        super().__init__(
            const.ERROR_INVALID_TRANSITION_FMT.format(badge_id, user_id, status)
        )


class ProgressEngine:
    """Pure logic engine for badge progress rows. All methods are static."""

    # =========================================================================
    # Rows
    # =========================================================================

    @staticmethod
    def default_row(user_id: str, rule: BadgeRule) -> UserBadgeProgress:
        """Return a locked row with zero progress for a rule."""
        return {
            "user_id": user_id,
            "badge_id": rule.id,
            "unlocked": False,
            "progress": 0,
            "target": rule.target,
            "unlocked_at": None,
            "status": const.BADGE_STATUS_LOCKED,
            "has_been_opened": False,
        }

    @classmethod
    def fill_defaults(
        cls,
        user_id: str,
        rows: Iterable[UserBadgeProgress],
        catalog: RuleCatalog,
    ) -> list[UserBadgeProgress]:
        """Return one row per catalog entry (catalog order), default-filled."""
        by_id = {row[const.DATA_BADGE_ID]: row for row in rows}
        return [
            copy.deepcopy(by_id[rule.id])
            if rule.id in by_id
            else cls.default_row(user_id, rule)
            for rule in catalog
        ]

    @classmethod
    def merge_results(
        cls,
        user_id: str,
        rows: Iterable[UserBadgeProgress],
        results: Iterable[UnlockResult],
        catalog: RuleCatalog,
    ) -> list[UserBadgeProgress]:
        """Merge a fresh evaluation into the persisted rows.

        - Returns one row per catalog entry in catalog order, followed by any
          rows for ids that are no longer in the catalog (kept unchanged).
        - A newly crossed threshold moves locked -> ready_to_unlock only;
          `unlocked` stays False until the chest is opened.
        - Results flagged evaluation_failed leave their row as it was.
        """
        existing = list(rows)
        by_id = {row[const.DATA_BADGE_ID]: row for row in existing}
        results_by_id = {result[const.DATA_BADGE_ID]: result for result in results}

        merged: list[UserBadgeProgress] = []
        for rule in catalog:
            if rule.id in by_id:
                row = copy.deepcopy(by_id[rule.id])
            else:
                row = cls.default_row(user_id, rule)

            result = results_by_id.get(rule.id)
            if result is not None and not result.get(const.DATA_EVALUATION_FAILED):
                cls._apply_result(row, result)
            merged.append(row)

        merged.extend(
            copy.deepcopy(row)
            for row in existing
            if row[const.DATA_BADGE_ID] not in catalog
        )
        return merged

    @staticmethod
    def _apply_result(row: UserBadgeProgress, result: UnlockResult) -> None:
        """Apply one result to a row in place, keeping status monotonic."""
        target = result.get(const.DATA_TARGET, row.get(const.DATA_TARGET, 0))
        progress = result.get(const.DATA_PROGRESS, 0)
        status = row.get(const.DATA_STATUS, const.BADGE_STATUS_LOCKED)

        row[const.DATA_TARGET] = target

        if status == const.BADGE_STATUS_LOCKED:
            if result.get(const.DATA_UNLOCKED):
                row[const.DATA_STATUS] = const.BADGE_STATUS_READY_TO_UNLOCK
                row[const.DATA_PROGRESS] = max(progress, target)
            else:
                row[const.DATA_PROGRESS] = progress
            return

        # ready_to_unlock / unlocked: never regress, never drop below target
        row[const.DATA_PROGRESS] = max(progress, target)

    # =========================================================================
    # Chest
    # =========================================================================

    @staticmethod
    def open_chest(row: UserBadgeProgress, now: datetime) -> UserBadgeProgress:
        """Return the row after the user acknowledges the reward.

        Raises:
            InvalidStateTransitionError: If the row is not ready_to_unlock
        """
        status = row.get(const.DATA_STATUS, const.BADGE_STATUS_LOCKED)
        if status != const.BADGE_STATUS_READY_TO_UNLOCK:
            raise InvalidStateTransitionError(
                row.get(const.DATA_USER_ID, ""), row[const.DATA_BADGE_ID], status
            )

        opened = copy.deepcopy(row)
        opened[const.DATA_STATUS] = const.BADGE_STATUS_UNLOCKED
        opened[const.DATA_UNLOCKED] = True
        opened[const.DATA_HAS_BEEN_OPENED] = True
        opened[const.DATA_UNLOCKED_AT] = now.isoformat()
        return opened

    # =========================================================================
    # History
    # =========================================================================

    @staticmethod
    def make_history_entry(row: UserBadgeProgress, reason: str) -> HistoryEntry:
        """Build a history record from an opened row."""
        return {
            "badge_id": row[const.DATA_BADGE_ID],
            "progress": row.get(const.DATA_PROGRESS, 0),
            "target": row.get(const.DATA_TARGET, 0),
            "reason": reason,
            "unlock_date": row.get(const.DATA_UNLOCKED_AT) or "",
        }

    @staticmethod
    def append_history(
        history: Iterable[HistoryEntry],
        entry: HistoryEntry,
        limit: int = const.DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        """Append an entry and evict the oldest entries beyond `limit`.

        Eviction is by append order, not by unlock_date.
        """
        updated = [*history, entry]
        if limit > 0 and len(updated) > limit:
            overflow = len(updated) - limit
            del updated[:overflow]
        return updated

    # =========================================================================
    # Summary
    # =========================================================================

    @staticmethod
    def summarize(
        rows: Iterable[UserBadgeProgress],
        history: Iterable[HistoryEntry],
        recent_limit: int = const.DEFAULT_RECENT_UNLOCKS,
    ) -> BadgeSummary:
        """Summarize a user's rows.

        progress_percentage is the share of badges opened (half-up rounded).
        next_badge is the locked badge with the highest progress ratio;
        ties go to the earlier row.
        """
        row_list = list(rows)
        total = len(row_list)
        counts = {
            const.BADGE_STATUS_LOCKED: 0,
            const.BADGE_STATUS_READY_TO_UNLOCK: 0,
            const.BADGE_STATUS_UNLOCKED: 0,
        }
        next_badge: UserBadgeProgress | None = None
        best_ratio = -1.0
        for row in row_list:
            status = row.get(const.DATA_STATUS, const.BADGE_STATUS_LOCKED)
            counts[status] = counts.get(status, 0) + 1
            if status != const.BADGE_STATUS_LOCKED:
                continue
            target = row.get(const.DATA_TARGET) or 0
            ratio = (row.get(const.DATA_PROGRESS) or 0) / target if target else 0.0
            if ratio > best_ratio:
                best_ratio = ratio
                next_badge = row

        unlocked = counts[const.BADGE_STATUS_UNLOCKED]
        percentage = math.floor(unlocked / total * 100 + 0.5) if total else 0

        recent = sorted(
            (entry for entry in history if entry.get(const.DATA_UNLOCK_DATE)),
            key=lambda entry: entry[const.DATA_UNLOCK_DATE],
            reverse=True,
        )[:recent_limit]

        return {
            const.DATA_SUMMARY_TOTAL: total,
            const.DATA_SUMMARY_UNLOCKED: unlocked,
            const.DATA_SUMMARY_READY: counts[const.BADGE_STATUS_READY_TO_UNLOCK],
            const.DATA_SUMMARY_LOCKED: counts[const.BADGE_STATUS_LOCKED],
            const.DATA_SUMMARY_PERCENTAGE: percentage,
            const.DATA_SUMMARY_RECENT_UNLOCKS: recent,
            const.DATA_SUMMARY_NEXT_BADGE: copy.deepcopy(next_badge),
        }
