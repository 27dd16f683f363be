# File: __init__.py
"""Initialization file for the Vocab Badges integration.

Handles setting up the integration: loading the badge rule catalog,
initializing per-user storage, wiring the managers together and
registering the services the vocabulary app calls.

Key Features:
- Config entry setup, unload and removal support.
- Optional custom rule catalog loaded from a YAML file.
- Storage cleanup when the entry is removed.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryError

from . import const
from .engines.rule_engine import RuleCatalog, RuleCatalogError
from .managers import BadgeManager, NotificationManager, ProgressManager
from .services import async_setup_services, async_unload_services
from .store import BadgeStore


async def _async_load_catalog(hass: HomeAssistant, entry: ConfigEntry) -> RuleCatalog:
    """Return the configured rule catalog, or the built-in one."""
    rules_file = (entry.options.get(const.CONF_RULES_FILE) or "").strip()
    if not rules_file:
        return RuleCatalog.default()

    path = hass.config.path(rules_file)
    try:
        catalog = await hass.async_add_executor_job(RuleCatalog.from_yaml, path)
    except RuleCatalogError as err:
        const.LOGGER.error("ERROR: Could not load badge rules: %s", err)
        raise ConfigEntryError(str(err)) from err

    const.LOGGER.info(
        "INFO: Loaded %d badge rules from %s", len(catalog), path
    )
    return catalog


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so new options take effect."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for Vocab Badges entry: %s", entry.entry_id)

    # Must be done before any component uses the datetime helpers
    const.set_default_timezone(hass)

    catalog = await _async_load_catalog(hass, entry)

    store = BadgeStore(hass)
    await store.async_initialize()

    progress_manager = ProgressManager(hass, entry, store, catalog)
    badge_manager = BadgeManager(hass, entry, store, catalog, progress_manager)
    notification_manager = NotificationManager(hass, entry)

    for manager in (progress_manager, badge_manager, notification_manager):
        await manager.async_setup()

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.BADGE_STORE: store,
        const.PROGRESS_MANAGER: progress_manager,
        const.BADGE_MANAGER: badge_manager,
        const.NOTIFICATION_MANAGER: notification_manager,
    }

    async_setup_services(hass)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("INFO: Vocab Badges setup complete for entry: %s", entry.entry_id)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading Vocab Badges entry: %s", entry.entry_id)

    hass.data[const.DOMAIN].pop(entry.entry_id, None)
    await async_unload_services(hass)
    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry by deleting all stored badge data."""
    const.LOGGER.info("INFO: Removing Vocab Badges entry: %s", entry.entry_id)

    entry_data = hass.data.get(const.DOMAIN, {}).get(entry.entry_id)
    if entry_data is not None:
        store: BadgeStore = entry_data[const.BADGE_STORE]
    else:
        # The entry is normally unloaded before removal
        store = BadgeStore(hass)
        await store.async_initialize()
    await store.async_delete_storage()

    const.LOGGER.info("INFO: Vocab Badges entry data cleared: %s", entry.entry_id)
