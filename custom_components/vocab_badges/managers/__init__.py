"""Manager modules for Vocab Badges integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .badge_manager import BadgeManager
from .base_manager import BaseManager
from .notification_manager import NotificationManager
from .progress_manager import ProgressManager

__all__ = [
    "BadgeManager",
    "BaseManager",
    "NotificationManager",
    "ProgressManager",
]
