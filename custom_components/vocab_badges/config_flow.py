# File: config_flow.py
"""Config flow for the Vocab Badges integration.

Single-instance config entry. Everything tunable lives in the options:
notify service, unlock-history cap, daily-stats retention and an optional
custom rules file.
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .engines.rule_engine import RuleCatalog, RuleCatalogError

ERROR_INVALID_RULES_FILE = "invalid_rules_file"


def _options_schema(defaults: dict[str, Any]) -> vol.Schema:
    """Build the options form schema with current values as defaults."""
    return vol.Schema(
        {
            vol.Optional(
                const.CONF_NOTIFY_SERVICE,
                default=defaults.get(
                    const.CONF_NOTIFY_SERVICE, const.DEFAULT_NOTIFY_SERVICE
                ),
            ): str,
            vol.Optional(
                const.CONF_HISTORY_LIMIT,
                default=defaults.get(
                    const.CONF_HISTORY_LIMIT, const.DEFAULT_HISTORY_LIMIT
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=10000)),
            vol.Optional(
                const.CONF_DAILY_STATS_RETENTION_DAYS,
                default=defaults.get(
                    const.CONF_DAILY_STATS_RETENTION_DAYS,
                    const.DEFAULT_DAILY_STATS_RETENTION_DAYS,
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=3650)),
            vol.Optional(
                const.CONF_RULES_FILE,
                default=defaults.get(const.CONF_RULES_FILE, const.DEFAULT_RULES_FILE),
            ): str,
        }
    )


async def _async_validate_rules_file(hass, user_input: dict[str, Any]) -> dict[str, str]:
    """Return form errors for an unreadable or invalid custom rules file."""
    rules_file = (user_input.get(const.CONF_RULES_FILE) or "").strip()
    if not rules_file:
        return {}
    try:
        await hass.async_add_executor_job(
            RuleCatalog.from_yaml, hass.config.path(rules_file)
        )
    except RuleCatalogError as err:
        const.LOGGER.warning("WARNING: %s", err)
        return {const.CONF_RULES_FILE: ERROR_INVALID_RULES_FILE}
    return {}


class VocabBadgesConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config flow for Vocab Badges."""

    VERSION = 1

    async def async_step_user(self, user_input: Optional[dict[str, Any]] = None):
        """Create the single Vocab Badges entry."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            errors = await _async_validate_rules_file(self.hass, user_input)
            if not errors:
                return self.async_create_entry(
                    title=const.VOCAB_BADGES_TITLE, data={}, options=user_input
                )

        return self.async_show_form(
            step_id="user",
            data_schema=_options_schema(user_input or {}),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return VocabBadgesOptionsFlowHandler()


class VocabBadgesOptionsFlowHandler(config_entries.OptionsFlow):
    """Options flow; saving new options reloads the entry."""

    async def async_step_init(self, user_input: Optional[dict[str, Any]] = None):
        """Show and store the integration options."""
        errors: dict[str, str] = {}
        if user_input is not None:
            errors = await _async_validate_rules_file(self.hass, user_input)
            if not errors:
                return self.async_create_entry(title="", data=user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=_options_schema(user_input or dict(self.config_entry.options)),
            errors=errors,
        )
