"""Tests for BadgeStore - per-user blobs on the Home Assistant Store API."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
from homeassistant.core import HomeAssistant

from custom_components.vocab_badges import const
from custom_components.vocab_badges.store import (
    STORAGE_KEY_USERS,
    BadgeStore,
    PersistenceError,
)
from tests.conftest import OTHER_USER, TEST_USER


@pytest.fixture
async def store(hass: HomeAssistant) -> BadgeStore:
    """Return an initialized BadgeStore."""
    badge_store = BadgeStore(hass)
    await badge_store.async_initialize()
    return badge_store


async def test_missing_blob_loads_as_none(store: BadgeStore) -> None:
    """A blob that was never written reads as None."""
    assert await store.async_load_blob(const.BLOB_BEHAVIOR, TEST_USER) is None


async def test_save_and_load_roundtrip(
    store: BadgeStore, hass_storage: dict[str, Any]
) -> None:
    """Saved blobs land in their own storage key and register the user."""
    await store.async_save_blob(const.BLOB_HISTORY, TEST_USER, [{"badge_id": "a"}])

    assert await store.async_load_blob(const.BLOB_HISTORY, TEST_USER) == [
        {"badge_id": "a"}
    ]
    assert hass_storage["vocab_badges.history.user_1"]["data"] == [{"badge_id": "a"}]
    assert hass_storage[STORAGE_KEY_USERS]["data"] == [TEST_USER]
    assert store.users == [TEST_USER]


async def test_loaded_blob_is_a_copy(store: BadgeStore) -> None:
    """Mutating a loaded blob does not change the cached value."""
    await store.async_save_blob(const.BLOB_PROGRESS, TEST_USER, [{"progress": 1}])
    loaded = await store.async_load_blob(const.BLOB_PROGRESS, TEST_USER)
    loaded[0]["progress"] = 99
    assert await store.async_load_blob(const.BLOB_PROGRESS, TEST_USER) == [
        {"progress": 1}
    ]


async def test_existing_storage_is_loaded(
    hass: HomeAssistant, hass_storage: dict[str, Any]
) -> None:
    """Blobs written by an earlier run are read back."""
    hass_storage[STORAGE_KEY_USERS] = {
        "version": const.STORAGE_VERSION,
        "key": STORAGE_KEY_USERS,
        "data": [OTHER_USER],
    }
    hass_storage["vocab_badges.sync.user_2"] = {
        "version": const.STORAGE_VERSION,
        "key": "vocab_badges.sync.user_2",
        "data": {"last_sync": "2026-03-01T00:00:00+00:00"},
    }

    badge_store = BadgeStore(hass)
    await badge_store.async_initialize()

    assert badge_store.users == [OTHER_USER]
    assert await badge_store.async_load_blob(const.BLOB_SYNC, OTHER_USER) == {
        "last_sync": "2026-03-01T00:00:00+00:00"
    }


async def test_save_failure_raises_and_keeps_previous(store: BadgeStore) -> None:
    """A failed write raises PersistenceError and the old value stays readable."""
    await store.async_save_blob(const.BLOB_BEHAVIOR, TEST_USER, {"words_collected": 1})

    with (
        patch(
            "homeassistant.helpers.storage.Store.async_save",
            side_effect=OSError("disk full"),
        ),
        pytest.raises(PersistenceError) as exc_info,
    ):
        await store.async_save_blob(
            const.BLOB_BEHAVIOR, TEST_USER, {"words_collected": 2}
        )

    assert exc_info.value.kind == const.BLOB_BEHAVIOR
    assert exc_info.value.user_id == TEST_USER
    assert await store.async_load_blob(const.BLOB_BEHAVIOR, TEST_USER) == {
        "words_collected": 1
    }


async def test_remove_user(store: BadgeStore, hass_storage: dict[str, Any]) -> None:
    """Removing a user deletes every blob and drops them from the index."""
    await store.async_save_blob(const.BLOB_BEHAVIOR, TEST_USER, {"words_collected": 1})
    await store.async_save_blob(const.BLOB_PROGRESS, TEST_USER, [])
    await store.async_save_blob(const.BLOB_BEHAVIOR, OTHER_USER, {"words_collected": 4})

    await store.async_remove_user(TEST_USER)

    assert await store.async_load_blob(const.BLOB_BEHAVIOR, TEST_USER) is None
    assert "vocab_badges.behavior.user_1" not in hass_storage
    assert store.users == [OTHER_USER]
    assert await store.async_load_blob(const.BLOB_BEHAVIOR, OTHER_USER) == {
        "words_collected": 4
    }


async def test_delete_storage(store: BadgeStore, hass_storage: dict[str, Any]) -> None:
    """Deleting storage removes all users and the index."""
    await store.async_save_blob(const.BLOB_BEHAVIOR, TEST_USER, {})
    await store.async_save_blob(const.BLOB_BEHAVIOR, OTHER_USER, {})

    await store.async_delete_storage()

    assert store.users == []
    assert not any(key.startswith("vocab_badges.") for key in hass_storage)
