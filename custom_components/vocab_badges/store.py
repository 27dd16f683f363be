# File: store.py
"""Handles persistent data storage for the Vocab Badges integration.

Uses Home Assistant's Storage helper with one Store file per blob kind per
user (`vocab_badges.<kind>.<user_id>`): behavior aggregate, progress rows,
unlock history and sync marker. A small index file (`vocab_badges.users`)
remembers which users have data so the whole integration can be removed.

Writes are whole-blob replacements. The in-memory cache is only updated
after the underlying Store write succeeds.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

STORAGE_KEY_USERS = f"{const.STORAGE_KEY_PREFIX}.users"


class PersistenceError(HomeAssistantError):
    """Raised when a blob cannot be written to storage.

    Attributes:
        kind: Blob kind (behavior, progress, history, sync)
        user_id: Owner of the blob
    """

    def __init__(self, kind: str, user_id: str, cause: Exception) -> None:
        """Initialize PersistenceError."""
        self.kind = kind
        self.user_id = user_id
        super().__init__(const.ERROR_PERSISTENCE_FMT.format(kind, user_id, cause))


class BadgeStore:
    """Handles persistent storage operations for per-user badge data.

    Thin wrapper around Home Assistant's Store API with an in-memory cache
    keyed by (kind, user_id).
    """

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
        """
        self.hass = hass
        self._stores: dict[tuple[str, str], Store] = {}
        self._cache: dict[tuple[str, str], Any] = {}
        self._users_store: Store = Store(hass, const.STORAGE_VERSION, STORAGE_KEY_USERS)
        self._users: set[str] = set()

    @staticmethod
    def storage_key(kind: str, user_id: str) -> str:
        """Return the Store key for a blob."""
        return f"{const.STORAGE_KEY_PREFIX}.{kind}.{user_id}"

    def _get_store(self, kind: str, user_id: str) -> Store:
        key = (kind, user_id)
        if key not in self._stores:
            self._stores[key] = Store(
                self.hass, const.STORAGE_VERSION, self.storage_key(kind, user_id)
            )
        return self._stores[key]

    async def async_initialize(self) -> None:
        """Load the user index during startup."""
        existing = await self._users_store.async_load()
        self._users = set(existing or [])
        const.LOGGER.debug(
            "DEBUG: BadgeStore: Loaded user index with %d users", len(self._users)
        )

    @property
    def users(self) -> list[str]:
        """Return the ids of users with stored data."""
        return sorted(self._users)

    # -------------------------------------------------------------------------
    # Blob access
    # -------------------------------------------------------------------------

    async def async_load_blob(self, kind: str, user_id: str) -> Any:
        """Return a blob (deep copy), or None if it was never written."""
        key = (kind, user_id)
        if key not in self._cache:
            self._cache[key] = await self._get_store(kind, user_id).async_load()
            const.LOGGER.debug(
                "DEBUG: Loaded %s blob for user %s (present=%s)",
                kind,
                user_id,
                self._cache[key] is not None,
            )
        return copy.deepcopy(self._cache[key])

    async def async_save_blob(self, kind: str, user_id: str, value: Any) -> None:
        """Persist a blob, then update the cache.

        Raises:
            PersistenceError: If the Store write fails. The cache keeps the
                previously persisted value.
        """
        store = self._get_store(kind, user_id)
        try:
            await store.async_save(value)
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save %s blob for user %s due to file system "
                "error: %s. Check disk space and file permissions for %s",
                kind,
                user_id,
                err,
                store.path,
            )
            raise PersistenceError(kind, user_id, err) from err
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "ERROR: Failed to save %s blob for user %s due to invalid or "
                "non-serializable data: %s",
                kind,
                user_id,
                err,
            )
            raise PersistenceError(kind, user_id, err) from err

        self._cache[(kind, user_id)] = copy.deepcopy(value)
        const.LOGGER.debug("DEBUG: Saved %s blob for user %s", kind, user_id)

        if user_id not in self._users:
            await self._async_save_users(self._users | {user_id})

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    async def async_remove_user(self, user_id: str) -> None:
        """Delete every blob of a user from disk and from the cache."""
        for kind in const.BLOB_KINDS:
            store = self._get_store(kind, user_id)
            try:
                await store.async_remove()
            except OSError as err:
                const.LOGGER.error(
                    "ERROR: Failed to remove storage file %s: %s. "
                    "Check file permissions",
                    store.path,
                    err,
                )
                raise PersistenceError(kind, user_id, err) from err
            self._cache.pop((kind, user_id), None)
            self._stores.pop((kind, user_id), None)

        if user_id in self._users:
            await self._async_save_users(self._users - {user_id})
        const.LOGGER.info("INFO: Removed stored badge data for user %s", user_id)

    async def async_delete_storage(self) -> None:
        """Delete all users' blobs and the user index."""
        for user_id in self.users:
            await self.async_remove_user(user_id)
        try:
            await self._users_store.async_remove()
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._users_store.path,
                err,
            )
        self._users = set()

    async def _async_save_users(self, users: set[str]) -> None:
        try:
            await self._users_store.async_save(sorted(users))
        except OSError as err:
            const.LOGGER.error("ERROR: Failed to save user index: %s", err)
            raise PersistenceError("users", "*", err) from err
        self._users = users
