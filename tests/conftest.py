"""Shared fixtures for Vocab Badges tests."""

from collections.abc import Generator
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.vocab_badges import const
from custom_components.vocab_badges.engines.behavior_engine import BehaviorEngine
from custom_components.vocab_badges.utils import dt_utils

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name

TEST_USER = "user_1"
OTHER_USER = "user_2"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def utc_timezone() -> Generator[None, None, None]:
    """Run a pure-engine test with UTC as the local timezone."""
    previous = dt_utils.get_default_timezone()
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    yield
    dt_utils.set_default_timezone(previous)


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=const.DOMAIN,
        title=const.VOCAB_BADGES_TITLE,
        data={},
        options={
            const.CONF_NOTIFY_SERVICE: const.DEFAULT_NOTIFY_SERVICE,
            const.CONF_HISTORY_LIMIT: const.DEFAULT_HISTORY_LIMIT,
            const.CONF_DAILY_STATS_RETENTION_DAYS: (
                const.DEFAULT_DAILY_STATS_RETENTION_DAYS
            ),
            const.CONF_RULES_FILE: const.DEFAULT_RULES_FILE,
        },
        entry_id="test_entry_id",
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,  # pylint: disable=redefined-outer-name
) -> MockConfigEntry:
    """Set up the Vocab Badges integration for testing."""
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry


def get_runtime_data(hass: HomeAssistant, entry: MockConfigEntry) -> dict[str, Any]:
    """Return hass.data for a loaded entry."""
    return hass.data[const.DOMAIN][entry.entry_id]


def create_aggregate(user_id: str = TEST_USER, **counters: Any) -> dict[str, Any]:
    """Create a behavior aggregate with the given counters set."""
    aggregate = BehaviorEngine.new_aggregate(user_id)
    aggregate.update(counters)
    return aggregate


def create_event(
    event_type: str,
    timestamp: str,
    user_id: str = TEST_USER,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a badge event."""
    return {
        "type": event_type,
        "user_id": user_id,
        "timestamp": timestamp,
        "data": data or {},
    }
