# File: helpers/entry_helpers.py
"""Config entry helper functions for Vocab Badges.

Lookup of the loaded integration instance from service handlers, and the
instance-scoped dispatcher signal names used between managers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import HomeAssistantError

from .. import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


# ==============================================================================
# Event Signal Helpers (Manager Communication)
# ==============================================================================


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'vocab_badges_{entry_id}_{suffix}'

    Example:
        >>> get_event_signal("abc123", const.SIGNAL_SUFFIX_BADGE_READY)
        'vocab_badges_abc123_badge_ready'
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


# ==============================================================================
# Entry Lookup
# ==============================================================================


def get_first_entry_id(hass: HomeAssistant) -> str | None:
    """Retrieve the first loaded Vocab Badges config entry ID."""
    domain_entries = hass.data.get(const.DOMAIN)
    if not domain_entries:
        return None
    return next(iter(domain_entries.keys()), None)


def get_entry_data(hass: HomeAssistant) -> dict[str, Any]:
    """Return the runtime data dict of the loaded instance.

    Raises:
        HomeAssistantError: If the integration has no loaded entry
    """
    entry_id = get_first_entry_id(hass)
    if not entry_id:
        const.LOGGER.warning("WARNING: %s", const.MSG_NO_ENTRY_FOUND)
        raise HomeAssistantError(const.MSG_NO_ENTRY_FOUND)
    return hass.data[const.DOMAIN][entry_id]
