"""Tests for Vocab Badges setup, unload and removal."""

from pathlib import Path
from typing import Any
from unittest.mock import patch

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.loader import async_get_integration
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.vocab_badges import const
from custom_components.vocab_badges.engines.rule_engine import RuleCatalog
from tests.conftest import TEST_USER, get_runtime_data


async def test_setup_entry(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Setup stores the managers and uses the built-in catalog."""
    assert init_integration.state is ConfigEntryState.LOADED
    runtime = get_runtime_data(hass, init_integration)
    for key in (
        const.BADGE_STORE,
        const.PROGRESS_MANAGER,
        const.BADGE_MANAGER,
        const.NOTIFICATION_MANAGER,
    ):
        assert key in runtime
    assert runtime[const.BADGE_MANAGER].catalog.ids() == RuleCatalog.default().ids()


async def test_manifest_metadata(hass: HomeAssistant) -> None:
    """The manifest loads with its version and runtime requirements only."""
    integration = await async_get_integration(hass, const.DOMAIN)
    assert str(integration.version) == "1.0.0"
    assert integration.config_flow is True
    assert integration.requirements == ["python-dateutil>=2.8", "PyYAML>=6.0"]
    assert integration.documentation is None
    assert integration.issue_tracker is None


async def test_setup_with_custom_rules_file(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry, tmp_path: Path
) -> None:
    """A configured rules file replaces the built-in catalog."""
    rules_file = tmp_path / "vocab_badges.yaml"
    rules_file.write_text(
        "rules:\n"
        "  - id: first_word\n"
        "    metric: words_collected_total\n"
        "    condition: threshold\n"
        "    threshold: 1\n",
        encoding="utf-8",
    )
    mock_config_entry.add_to_hass(hass)
    hass.config_entries.async_update_entry(
        mock_config_entry,
        options={**mock_config_entry.options, const.CONF_RULES_FILE: str(rules_file)},
    )

    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    manager = get_runtime_data(hass, mock_config_entry)[const.BADGE_MANAGER]
    assert manager.catalog.ids() == ["first_word"]
    unlocks = await manager.async_trigger_event(const.EVENT_WORD_COLLECTED, TEST_USER)
    assert [u["badge_id"] for u in unlocks] == ["first_word"]


async def test_setup_with_invalid_rules_file(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry, tmp_path: Path
) -> None:
    """An unreadable rules file fails setup."""
    mock_config_entry.add_to_hass(hass)
    hass.config_entries.async_update_entry(
        mock_config_entry,
        options={
            **mock_config_entry.options,
            const.CONF_RULES_FILE: str(tmp_path / "missing.yaml"),
        },
    )

    assert not await hass.config_entries.async_setup(mock_config_entry.entry_id)
    assert mock_config_entry.state is ConfigEntryState.SETUP_ERROR


async def test_unload_entry(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Unloading drops the runtime data."""
    assert await hass.config_entries.async_unload(init_integration.entry_id)
    await hass.async_block_till_done()

    assert init_integration.state is ConfigEntryState.NOT_LOADED
    assert init_integration.entry_id not in hass.data[const.DOMAIN]


async def test_remove_entry_deletes_storage(
    hass: HomeAssistant,
    init_integration: MockConfigEntry,
    hass_storage: dict[str, Any],
) -> None:
    """Removing the entry deletes every stored blob."""
    manager = get_runtime_data(hass, init_integration)[const.BADGE_MANAGER]
    await manager.async_trigger_event(const.EVENT_WORD_COLLECTED, TEST_USER)
    assert "vocab_badges.behavior.user_1" in hass_storage

    await hass.config_entries.async_remove(init_integration.entry_id)
    await hass.async_block_till_done()

    assert not any(key.startswith("vocab_badges.") for key in hass_storage)


async def test_options_update_reloads_entry(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Changing options reloads the entry."""
    with patch(
        "custom_components.vocab_badges.async_setup_entry", return_value=True
    ) as mock_setup_entry:
        hass.config_entries.async_update_entry(
            init_integration,
            options={**init_integration.options, const.CONF_HISTORY_LIMIT: 5},
        )
        await hass.async_block_till_done()

    assert len(mock_setup_entry.mock_calls) == 1
