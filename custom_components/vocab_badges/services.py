# File: services.py
"""Defines custom services for the Vocab Badges integration.

These services are the inbound surface for the vocabulary app and for
automations: pushing behavior events, opening badge chests and querying
progress. Query services return their data as service responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import voluptuous as vol
from homeassistant.core import ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.helpers import config_validation as cv

from . import const
from .helpers.entry_helpers import get_entry_data

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .managers.badge_manager import BadgeManager

# User ids become part of storage file names
USER_ID_VALIDATOR = vol.All(cv.string, cv.matches_regex(r"^[A-Za-z0-9_\-.@]+$"))

# --- Service Schemas ---
TRIGGER_EVENT_SCHEMA = vol.Schema(
    {
        # Unknown types reach the manager, which logs and ignores them
        vol.Required(const.FIELD_EVENT_TYPE): cv.string,
        vol.Required(const.FIELD_USER_ID): USER_ID_VALIDATOR,
        vol.Optional(const.FIELD_DATA, default={}): dict,
        vol.Optional(const.FIELD_TIMESTAMP): cv.datetime,
    }
)

OPEN_BADGE_CHEST_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): USER_ID_VALIDATOR,
        vol.Required(const.FIELD_BADGE_ID): cv.string,
    }
)

USER_ONLY_SCHEMA = vol.Schema({vol.Required(const.FIELD_USER_ID): USER_ID_VALIDATOR})

GET_BADGE_DEFINITIONS_SCHEMA = vol.Schema(
    {vol.Optional(const.FIELD_LOCALE, default=const.DEFAULT_LOCALE): cv.string}
)


def _get_badge_manager(hass: HomeAssistant) -> BadgeManager:
    return get_entry_data(hass)[const.BADGE_MANAGER]


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Vocab Badges services."""

    async def handle_trigger_event(call: ServiceCall) -> ServiceResponse:
        """Handle a behavior event pushed by the app."""
        manager = _get_badge_manager(hass)
        new_unlocks = await manager.async_trigger_event(
            call.data[const.FIELD_EVENT_TYPE],
            call.data[const.FIELD_USER_ID],
            data=call.data.get(const.FIELD_DATA),
            timestamp=call.data.get(const.FIELD_TIMESTAMP),
        )
        if call.return_response:
            return {const.RESPONSE_NEW_UNLOCKS: new_unlocks}
        return None

    async def handle_open_badge_chest(call: ServiceCall) -> ServiceResponse:
        """Handle the user opening a ready badge chest."""
        manager = _get_badge_manager(hass)
        user_id = call.data[const.FIELD_USER_ID]
        badge_id = call.data[const.FIELD_BADGE_ID]
        opened = await manager.async_open_chest(user_id, badge_id)
        if not opened:
            const.LOGGER.warning(
                "WARNING: Open Badge Chest: badge %s of user %s is not ready",
                badge_id,
                user_id,
            )
        if call.return_response:
            return {const.RESPONSE_OPENED: opened}
        return None

    async def handle_get_user_badge_progress(call: ServiceCall) -> ServiceResponse:
        """Return one progress row per badge."""
        manager = _get_badge_manager(hass)
        rows = await manager.async_get_user_badge_progress(call.data[const.FIELD_USER_ID])
        return {const.RESPONSE_PROGRESS: rows}

    async def handle_get_badge_definitions(call: ServiceCall) -> ServiceResponse:
        """Return display metadata for every badge."""
        manager = _get_badge_manager(hass)
        return {
            const.RESPONSE_BADGES: manager.get_badge_definitions(
                call.data.get(const.FIELD_LOCALE)
            )
        }

    async def handle_get_badge_summary(call: ServiceCall) -> ServiceResponse:
        """Return the user's badge summary."""
        manager = _get_badge_manager(hass)
        summary = await manager.async_get_summary(call.data[const.FIELD_USER_ID])
        return {const.RESPONSE_SUMMARY: dict(summary)}

    async def handle_manual_badge_check(call: ServiceCall) -> ServiceResponse:
        """Re-evaluate a user's badges without a new event."""
        manager = _get_badge_manager(hass)
        new_unlocks = await manager.async_manual_badge_check(
            call.data[const.FIELD_USER_ID]
        )
        if call.return_response:
            return {const.RESPONSE_NEW_UNLOCKS: new_unlocks}
        return None

    async def handle_clear_user_data(call: ServiceCall) -> None:
        """Delete all stored badge data of a user."""
        manager = _get_badge_manager(hass)
        await manager.async_clear_user_data(call.data[const.FIELD_USER_ID])

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_TRIGGER_EVENT,
        handle_trigger_event,
        schema=TRIGGER_EVENT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_OPEN_BADGE_CHEST,
        handle_open_badge_chest,
        schema=OPEN_BADGE_CHEST_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_GET_USER_BADGE_PROGRESS,
        handle_get_user_badge_progress,
        schema=USER_ONLY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_GET_BADGE_DEFINITIONS,
        handle_get_badge_definitions,
        schema=GET_BADGE_DEFINITIONS_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_GET_BADGE_SUMMARY,
        handle_get_badge_summary,
        schema=USER_ONLY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_MANUAL_BADGE_CHECK,
        handle_manual_badge_check,
        schema=USER_ONLY_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLEAR_USER_DATA,
        handle_clear_user_data,
        schema=USER_ONLY_SCHEMA,
    )

    const.LOGGER.info("INFO: Vocab Badges services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Vocab Badges services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: Vocab Badges services have been unregistered")
