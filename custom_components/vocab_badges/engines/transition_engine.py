"""Transition Engine - Pure logic for detecting newly crossed badge thresholds.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.

The "previous" side of a diff is the last-persisted progress snapshot, not
the previous in-memory evaluation. A badge that crossed its threshold but
could not be persisted is therefore reported again on the next diff.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from ..type_defs import UnlockResult, UserBadgeProgress


class TransitionEngine:
    """Pure logic engine for unlock transitions. All methods are static."""

    @staticmethod
    def diff(
        previous: Iterable[UnlockResult],
        current: Iterable[UnlockResult],
    ) -> list[UnlockResult]:
        """Return the results in `current` that are newly unlocked.

        A result is new when it is unlocked now and its previous counterpart
        (matched by badge_id) is absent or was not unlocked. Output keeps the
        order of `current`. Regressions (unlocked -> locked) are never reported.
        """
        previously_unlocked = {
            result[const.DATA_BADGE_ID]: bool(result.get(const.DATA_UNLOCKED))
            for result in previous
        }
        return [
            result
            for result in current
            if result.get(const.DATA_UNLOCKED)
            and not previously_unlocked.get(result[const.DATA_BADGE_ID], False)
        ]

    @staticmethod
    def snapshot_from_progress(
        rows: Iterable[UserBadgeProgress],
    ) -> list[UnlockResult]:
        """Convert persisted progress rows into the `previous` input of diff().

        ready_to_unlock and unlocked rows both count as already crossed: the
        user has been told about them even if the chest is still closed.
        """
        snapshot: list[UnlockResult] = []
        for row in rows:
            crossed = row.get(const.DATA_STATUS) in (
                const.BADGE_STATUS_READY_TO_UNLOCK,
                const.BADGE_STATUS_UNLOCKED,
            )
            snapshot.append(
                {
                    "badge_id": row[const.DATA_BADGE_ID],
                    "unlocked": crossed,
                    "progress": row.get(const.DATA_PROGRESS, 0),
                    "target": row.get(const.DATA_TARGET, 0),
                    "unlock_date": row.get(const.DATA_UNLOCKED_AT),
                    "reason": "",
                }
            )
        return snapshot
