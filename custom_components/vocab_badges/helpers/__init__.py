# File: helpers/__init__.py
"""Home Assistant-bound helper functions for Vocab Badges.

This module contains functions that REQUIRE Home Assistant dependencies.

NOTE: Functions that need `hass` object belong here, NOT in utils/.

Submodules:
    - entry_helpers: Config entry lookup and instance-scoped signal names

Usage:
    from . import entry_helpers
    from .entry_helpers import get_event_signal
"""

from . import entry_helpers

__all__ = ["entry_helpers"]
