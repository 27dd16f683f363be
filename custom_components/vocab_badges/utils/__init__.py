"""Pure Python utilities for Vocab Badges.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time parsing and local calendar-day arithmetic

Usage:
    from . import dt_utils
"""

from . import dt_utils

__all__ = ["dt_utils"]
