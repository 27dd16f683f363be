"""Progress Manager - persisted badge lifecycle rows and unlock history.

This manager is the async layer around ProgressEngine:
- Reads and writes the per-user progress rows blob
- Merges evaluation results (locked -> ready_to_unlock)
- Opens chests (ready_to_unlock -> unlocked) and appends the history log

Callers are expected to hold the user's lock (see BadgeManager).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const
from ..engines.progress_engine import InvalidStateTransitionError, ProgressEngine
from ..utils import dt_utils
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable

    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from ..engines.rule_engine import RuleCatalog
    from ..store import BadgeStore
    from ..type_defs import HistoryEntry, UnlockResult, UserBadgeProgress


class ProgressManager(BaseManager):
    """Manager for per-user UserBadgeProgress rows and history."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        store: BadgeStore,
        catalog: RuleCatalog,
    ) -> None:
        """Initialize the progress manager.

        Args:
            hass: Home Assistant instance
            config_entry: The integration instance
            store: Per-user blob storage
            catalog: Active rule catalog
        """
        super().__init__(hass, config_entry)
        self._store = store
        self._catalog = catalog

    async def async_setup(self) -> None:
        """Nothing to subscribe to; rows are loaded lazily per user."""
        const.LOGGER.debug(
            "DEBUG: ProgressManager ready with %d badge rules", len(self._catalog)
        )

    @property
    def history_limit(self) -> int:
        """Return the configured unlock-history cap."""
        return int(self.option(const.CONF_HISTORY_LIMIT, const.DEFAULT_HISTORY_LIMIT))

    # =========================================================================
    # Rows
    # =========================================================================

    async def async_get(self, user_id: str) -> list[UserBadgeProgress]:
        """Return the persisted rows for a user (empty before first evaluation)."""
        return await self._store.async_load_blob(const.BLOB_PROGRESS, user_id) or []

    async def async_batch_update(
        self, user_id: str, results: Iterable[UnlockResult]
    ) -> list[UserBadgeProgress]:
        """Merge evaluation results into the user's rows and persist them.

        Raises:
            PersistenceError: If the write fails (persisted rows are unchanged)
        """
        rows = await self.async_get(user_id)
        merged = ProgressEngine.merge_results(user_id, rows, results, self._catalog)
        await self._store.async_save_blob(const.BLOB_PROGRESS, user_id, merged)
        return merged

    async def async_set_rows(
        self, user_id: str, rows: Iterable[UserBadgeProgress]
    ) -> None:
        """Replace a user's rows (used by import)."""
        normalized = []
        for row in rows:
            normalized.append({**row, const.DATA_USER_ID: user_id})
        await self._store.async_save_blob(const.BLOB_PROGRESS, user_id, normalized)

    # =========================================================================
    # Chest
    # =========================================================================

    async def async_open_chest(self, user_id: str, badge_id: str) -> bool:
        """Open a badge chest.

        Returns:
            True if the row moved to unlocked; False for unknown badges and
            rows that are not ready_to_unlock (nothing is changed then).

        Raises:
            PersistenceError: If the opened row cannot be written
        """
        rule = self._catalog.get_rule(badge_id)
        if rule is None:
            const.LOGGER.warning(
                "WARNING: Open chest for unknown badge %s (user %s)", badge_id, user_id
            )
            return False

        rows = await self.async_get(user_id)
        index = next(
            (
                i
                for i, row in enumerate(rows)
                if row.get(const.DATA_BADGE_ID) == badge_id
            ),
            None,
        )
        row = rows[index] if index is not None else ProgressEngine.default_row(
            user_id, rule
        )

        try:
            opened = ProgressEngine.open_chest(row, dt_utils.dt_now_utc())
        except InvalidStateTransitionError as err:
            const.LOGGER.warning("WARNING: %s", err)
            return False

        if index is None:
            rows.append(opened)
        else:
            rows[index] = opened
        await self._store.async_save_blob(const.BLOB_PROGRESS, user_id, rows)

        await self.async_append_history(
            user_id, ProgressEngine.make_history_entry(opened, const.REASON_CHEST_OPENED)
        )
        const.LOGGER.info("INFO: User %s opened badge chest %s", user_id, badge_id)
        return True

    # =========================================================================
    # History
    # =========================================================================

    async def async_get_history(self, user_id: str) -> list[HistoryEntry]:
        """Return the user's unlock history, oldest first."""
        return await self._store.async_load_blob(const.BLOB_HISTORY, user_id) or []

    async def async_append_history(self, user_id: str, entry: HistoryEntry) -> None:
        """Append one entry, evicting the oldest beyond the configured cap."""
        history = await self.async_get_history(user_id)
        updated = ProgressEngine.append_history(history, entry, self.history_limit)
        await self._store.async_save_blob(const.BLOB_HISTORY, user_id, updated)

    async def async_set_history(
        self, user_id: str, history: Iterable[HistoryEntry]
    ) -> None:
        """Replace a user's history (used by import), keeping the newest entries."""
        entries = list(history)
        limit = self.history_limit
        if limit > 0 and len(entries) > limit:
            entries = entries[-limit:]
        await self._store.async_save_blob(const.BLOB_HISTORY, user_id, entries)
