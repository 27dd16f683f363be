"""Badge Manager - the per-user badge facade.

This manager orchestrates the engines for every public badge operation:
- Event ingestion: behavior fold -> rule evaluation -> diff -> persist -> emit
- Progress reads (single badge, all badges, summary, history)
- Chest opening
- Badge definitions for display
- Manual re-checks, data clear, export/import, sync markers

Concurrency:
- Every mutating operation for a user runs under that user's asyncio.Lock
- Different users proceed concurrently

Persistence failures:
- The in-memory behavior aggregate is kept (events are never un-counted)
- Progress rows are not advanced, so the diff against the persisted
  snapshot reports the pending unlocks again on the next event or manual check
- The failure propagates as PersistenceError
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError

from .. import const
from ..engines.behavior_engine import BadgeEventValidationError, BehaviorEngine
from ..engines.progress_engine import ProgressEngine
from ..engines.rule_engine import RuleEngine
from ..engines.transition_engine import TransitionEngine
from ..store import PersistenceError
from ..utils import dt_utils
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from ..engines.rule_engine import BadgeRule, RuleCatalog
    from ..store import BadgeStore
    from ..type_defs import (
        BadgeDefinition,
        BadgeEvent,
        BadgeSummary,
        BehaviorAggregate,
        HistoryEntry,
        UnlockResult,
        UserBadgeProgress,
        UserDataExport,
    )
    from .progress_manager import ProgressManager


class BadgeManager(BaseManager):
    """Facade over behavior tracking, rule evaluation and badge progress."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        store: BadgeStore,
        catalog: RuleCatalog,
        progress_manager: ProgressManager,
    ) -> None:
        """Initialize the badge manager.

        Args:
            hass: Home Assistant instance
            config_entry: The integration instance
            store: Per-user blob storage
            catalog: Active rule catalog
            progress_manager: Owner of progress rows and history
        """
        super().__init__(hass, config_entry)
        self._store = store
        self._catalog = catalog
        self._progress = progress_manager
        self._user_locks: dict[str, asyncio.Lock] = {}
        # Latest aggregate per user, including folds that failed to persist
        self._behavior: dict[str, BehaviorAggregate] = {}
        self._unsaved_behavior: set[str] = set()
        self._pending_notifications: set[str] = set()

    async def async_setup(self) -> None:
        """Nothing to subscribe to; user data is loaded lazily."""
        const.LOGGER.debug(
            "DEBUG: BadgeManager ready for %d known users", len(self._store.users)
        )

    @property
    def catalog(self) -> RuleCatalog:
        """Return the active rule catalog."""
        return self._catalog

    @property
    def retention_days(self) -> int:
        """Return the configured daily-stats retention window."""
        return int(
            self.option(
                const.CONF_DAILY_STATS_RETENTION_DAYS,
                const.DEFAULT_DAILY_STATS_RETENTION_DAYS,
            )
        )

    def _get_lock(self, user_id: str) -> asyncio.Lock:
        """Get or create the lock that serializes writes for one user."""
        if user_id not in self._user_locks:
            self._user_locks[user_id] = asyncio.Lock()
        return self._user_locks[user_id]

    def has_pending_notifications(self, user_id: str) -> bool:
        """Return True if a detected unlock could not be persisted yet."""
        return user_id in self._pending_notifications

    # =========================================================================
    # Event ingestion
    # =========================================================================

    async def async_trigger_event(
        self,
        event_type: str,
        user_id: str,
        data: dict[str, Any] | None = None,
        timestamp: str | datetime | None = None,
    ) -> list[UnlockResult]:
        """Process one behavior event for a user.

        Returns:
            The newly unlocked results (empty for unknown event types)

        Raises:
            PersistenceError: If the aggregate or the progress rows cannot be
                written
        """
        event_time = dt_utils.dt_parse(timestamp) or dt_utils.dt_now_utc()
        event: BadgeEvent = {
            "type": event_type,
            const.DATA_USER_ID: user_id,
            "timestamp": event_time.isoformat(),
            "data": data or {},
        }

        async with self._get_lock(user_id):
            aggregate = await self._async_get_behavior(user_id)
            try:
                updated = BehaviorEngine.update(
                    aggregate, event, retention_days=self.retention_days
                )
            except BadgeEventValidationError as err:
                const.LOGGER.warning(
                    "WARNING: Ignoring event for user %s: %s", user_id, err
                )
                return []

            self._behavior[user_id] = updated
            try:
                await self._async_save_behavior(user_id, updated)
            except PersistenceError:
                _, new_unlocks = await self._async_detect(
                    user_id, updated, event_time
                )
                self._mark_pending(user_id, new_unlocks)
                raise
            const.LOGGER.debug(
                "DEBUG: Applied %s event for user %s", event_type, user_id
            )
            return await self._async_evaluate(user_id, updated, event_time)

    async def async_manual_badge_check(self, user_id: str) -> list[UnlockResult]:
        """Re-evaluate a user without a new event.

        Also retries writes that failed earlier, which re-emits any pending
        badge-ready notifications.
        """
        async with self._get_lock(user_id):
            aggregate = await self._async_get_behavior(user_id)
            if aggregate is None:
                aggregate = BehaviorEngine.new_aggregate(user_id)
            if user_id in self._unsaved_behavior:
                await self._async_save_behavior(user_id, aggregate)
            return await self._async_evaluate(
                user_id, aggregate, dt_utils.dt_now_utc()
            )

    async def _async_evaluate(
        self, user_id: str, behavior: BehaviorAggregate, now: datetime
    ) -> list[UnlockResult]:
        """Evaluate, diff against persisted rows, persist, then emit."""
        results, new_unlocks = await self._async_detect(user_id, behavior, now)

        try:
            await self._progress.async_batch_update(user_id, results)
        except PersistenceError:
            self._mark_pending(user_id, new_unlocks)
            raise

        self._pending_notifications.discard(user_id)
        for unlock in new_unlocks:
            const.LOGGER.info(
                "INFO: User %s is ready to unlock badge %s",
                user_id,
                unlock[const.DATA_BADGE_ID],
            )
            self.emit(
                const.SIGNAL_SUFFIX_BADGE_READY,
                user_id=user_id,
                badge_id=unlock[const.DATA_BADGE_ID],
                progress=unlock[const.DATA_PROGRESS],
                target=unlock[const.DATA_TARGET],
                reason=unlock[const.DATA_REASON],
                unlock_date=unlock[const.DATA_UNLOCK_DATE],
            )
        return new_unlocks

    async def _async_detect(
        self, user_id: str, behavior: BehaviorAggregate, now: datetime
    ) -> tuple[list[UnlockResult], list[UnlockResult]]:
        """Return all results and the ones newly crossed since the last save."""
        results = RuleEngine.evaluate_all(behavior, self._catalog, now)
        persisted = await self._progress.async_get(user_id)
        new_unlocks = TransitionEngine.diff(
            TransitionEngine.snapshot_from_progress(persisted), results
        )
        return results, new_unlocks

    def _mark_pending(self, user_id: str, new_unlocks: list[UnlockResult]) -> None:
        if not new_unlocks:
            return
        self._pending_notifications.add(user_id)
        const.LOGGER.error(
            "ERROR: %d unlocks for user %s are pending until progress "
            "can be saved",
            len(new_unlocks),
            user_id,
        )

    # =========================================================================
    # Behavior aggregate
    # =========================================================================

    async def _async_get_behavior(self, user_id: str) -> BehaviorAggregate | None:
        if user_id not in self._behavior:
            stored = await self._store.async_load_blob(const.BLOB_BEHAVIOR, user_id)
            if stored is None:
                return None
            self._behavior[user_id] = stored
        return self._behavior[user_id]

    async def _async_save_behavior(
        self, user_id: str, aggregate: BehaviorAggregate
    ) -> None:
        try:
            await self._store.async_save_blob(const.BLOB_BEHAVIOR, user_id, aggregate)
        except PersistenceError:
            self._unsaved_behavior.add(user_id)
            raise
        self._unsaved_behavior.discard(user_id)

    async def async_get_behavior(self, user_id: str) -> BehaviorAggregate | None:
        """Return the user's current aggregate, or None before the first event."""
        return await self._async_get_behavior(user_id)

    # =========================================================================
    # Progress reads
    # =========================================================================

    async def async_get_progress(
        self, user_id: str, badge_id: str
    ) -> UserBadgeProgress | None:
        """Return one badge row (default-filled), or None for unknown badges."""
        rule = self._catalog.get_rule(badge_id)
        if rule is None:
            return None
        for row in await self._progress.async_get(user_id):
            if row.get(const.DATA_BADGE_ID) == badge_id:
                return row
        return ProgressEngine.default_row(user_id, rule)

    async def async_get_user_badge_progress(
        self, user_id: str
    ) -> list[UserBadgeProgress]:
        """Return one row per catalog badge, in catalog order."""
        rows = await self._progress.async_get(user_id)
        return ProgressEngine.fill_defaults(user_id, rows, self._catalog)

    async def async_get_history(self, user_id: str) -> list[HistoryEntry]:
        """Return the user's unlock history, oldest first."""
        return await self._progress.async_get_history(user_id)

    async def async_get_summary(self, user_id: str) -> BadgeSummary:
        """Return totals, completion percentage, recent unlocks and next badge."""
        rows = await self.async_get_user_badge_progress(user_id)
        history = await self._progress.async_get_history(user_id)
        return ProgressEngine.summarize(rows, history)

    # =========================================================================
    # Chest
    # =========================================================================

    async def async_open_chest(self, user_id: str, badge_id: str) -> bool:
        """Open a ready badge chest; False if the badge is not ready."""
        async with self._get_lock(user_id):
            opened = await self._progress.async_open_chest(user_id, badge_id)
            if opened:
                row = await self.async_get_progress(user_id, badge_id)
                self.emit(
                    const.SIGNAL_SUFFIX_BADGE_OPENED,
                    user_id=user_id,
                    badge_id=badge_id,
                    unlocked_at=row.get(const.DATA_UNLOCKED_AT) if row else None,
                )
            return opened

    # =========================================================================
    # Definitions
    # =========================================================================

    def get_badge_rule(self, badge_id: str) -> BadgeRule | None:
        """Return the rule for a badge id, or None if unknown."""
        return self._catalog.get_rule(badge_id)

    def get_badge_definitions(
        self, locale: str | None = None
    ) -> list[BadgeDefinition]:
        """Return display metadata for every badge in catalog order.

        Names and descriptions are translation keys; the locale is echoed
        back for the client to resolve them.
        """
        return [
            {
                const.DATA_DEFINITION_ID: rule.id,
                const.DATA_DEFINITION_CATEGORY: rule.category,
                const.DATA_DEFINITION_ICON: rule.icon,
                const.DATA_DEFINITION_CONDITION: rule.condition,
                const.DATA_DEFINITION_METRIC: rule.metric,
                const.DATA_DEFINITION_TARGET: rule.target,
                const.DATA_DEFINITION_PRIORITY: rule.priority,
                const.DATA_DEFINITION_NAME_KEY: const.TRANS_KEY_BADGE_NAME_FMT.format(
                    rule.id
                ),
                const.DATA_DEFINITION_DESCRIPTION_KEY: (
                    const.TRANS_KEY_BADGE_DESCRIPTION_FMT.format(rule.id)
                ),
                const.DATA_DEFINITION_LOCALE: locale or const.DEFAULT_LOCALE,
            }
            for rule in self._catalog
        ]

    # =========================================================================
    # Data management
    # =========================================================================

    async def async_clear_user_data(self, user_id: str) -> None:
        """Delete every stored blob of a user."""
        async with self._get_lock(user_id):
            await self._store.async_remove_user(user_id)
            self._behavior.pop(user_id, None)
            self._unsaved_behavior.discard(user_id)
            self._pending_notifications.discard(user_id)
            self.emit(const.SIGNAL_SUFFIX_USER_DATA_CLEARED, user_id=user_id)
        const.LOGGER.info("INFO: Cleared badge data for user %s", user_id)

    async def async_export_user_data(self, user_id: str) -> UserDataExport:
        """Return a backup of the user's behavior, progress and history."""
        return {
            const.DATA_USER_ID: user_id,
            const.DATA_EXPORT_DATE: dt_utils.dt_now_utc().isoformat(),
            const.DATA_EXPORT_BEHAVIOR: copy.deepcopy(
                await self._async_get_behavior(user_id)
            ),
            const.DATA_EXPORT_PROGRESS: await self._progress.async_get(user_id),
            const.DATA_EXPORT_HISTORY: await self._progress.async_get_history(user_id),
        }

    async def async_import_user_data(
        self, user_id: str, payload: dict[str, Any]
    ) -> None:
        """Restore a backup produced by async_export_user_data().

        Raises:
            HomeAssistantError: If the backup belongs to another user
            PersistenceError: If a blob cannot be written
        """
        source_user = payload.get(const.DATA_USER_ID)
        if source_user != user_id:
            raise HomeAssistantError(
                const.ERROR_IMPORT_USER_MISMATCH_FMT.format(source_user, user_id)
            )

        async with self._get_lock(user_id):
            behavior = payload.get(const.DATA_EXPORT_BEHAVIOR)
            if behavior is not None:
                behavior = {**behavior, const.DATA_USER_ID: user_id}
                self._behavior[user_id] = behavior
                await self._async_save_behavior(user_id, behavior)
            await self._progress.async_set_rows(
                user_id, payload.get(const.DATA_EXPORT_PROGRESS) or []
            )
            await self._progress.async_set_history(
                user_id, payload.get(const.DATA_EXPORT_HISTORY) or []
            )
        const.LOGGER.info("INFO: Imported badge data for user %s", user_id)

    # =========================================================================
    # Sync marker
    # =========================================================================

    async def async_mark_synced(self, user_id: str) -> None:
        """Record that the user's data was just reconciled with the remote copy."""
        await self._store.async_save_blob(
            const.BLOB_SYNC,
            user_id,
            {const.DATA_LAST_SYNC: dt_utils.dt_now_utc().isoformat()},
        )

    async def async_should_sync(
        self,
        user_id: str,
        interval: float = const.DEFAULT_SYNC_INTERVAL_SECONDS,
    ) -> bool:
        """Return True if the last sync is older than `interval` seconds."""
        marker = await self._store.async_load_blob(const.BLOB_SYNC, user_id)
        last_sync = dt_utils.dt_parse((marker or {}).get(const.DATA_LAST_SYNC))
        if last_sync is None:
            return True
        elapsed = (dt_utils.dt_now_utc() - last_sync).total_seconds()
        return elapsed >= interval
