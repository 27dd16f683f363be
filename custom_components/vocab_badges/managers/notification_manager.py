# File: notification_manager.py
"""Notification Manager for Vocab Badges integration.

This manager handles all outgoing badge notifications:
- Listens for badge_ready / badge_opened signals from BadgeManager
- Fires Home Assistant bus events so automations and other collaborators
  can react (`vocab_badges_badge_ready`, `vocab_badges_badge_opened`)
- Calls the configured `notify.*` service for badge_ready, if any

Managers emit events, NotificationManager reacts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import callback

from .. import const
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


# =============================================================================
# Module-level helper for testability
# =============================================================================


async def async_send_notification(
    hass: HomeAssistant,
    service: str,
    title: str,
    message: str,
    extra_data: dict[str, Any] | None = None,
) -> None:
    """Send a notification via Home Assistant service call.

    This is a module-level function that can be easily mocked in tests.

    Args:
        hass: Home Assistant instance
        service: Notification service in format "notify.service_name" or just service name
        title: Notification title
        message: Notification message
        extra_data: Optional extra data (e.g., tag)
    """
    if "." in service:
        domain, svc = service.split(".", 1)
    else:
        domain = const.NOTIFY_DOMAIN
        svc = service

    payload: dict[str, Any] = {
        const.NOTIFY_TITLE: title,
        const.NOTIFY_MESSAGE: message,
    }
    if extra_data:
        payload[const.NOTIFY_DATA] = dict(extra_data)

    const.LOGGER.debug(
        "async_send_notification: %s.%s - title='%s', message='%s'",
        domain,
        svc,
        title,
        message,
    )

    await hass.services.async_call(domain, svc, payload, blocking=True)


class NotificationManager(BaseManager):
    """Manager that turns badge signals into bus events and notifications."""

    async def async_setup(self) -> None:
        """Subscribe to badge lifecycle signals."""
        self.listen(const.SIGNAL_SUFFIX_BADGE_READY, self._handle_badge_ready)
        self.listen(const.SIGNAL_SUFFIX_BADGE_OPENED, self._handle_badge_opened)

    @property
    def notify_service(self) -> str:
        """Return the configured notify service, or "" when disabled."""
        return str(
            self.option(const.CONF_NOTIFY_SERVICE, const.DEFAULT_NOTIFY_SERVICE) or ""
        )

    # =========================================================================
    # Event handlers
    # =========================================================================

    @callback
    def _handle_badge_ready(self, payload: dict[str, Any]) -> None:
        """Handle BADGE_READY - fire bus event and send the push notification.

        Args:
            payload: Event data containing user_id, badge_id, progress, target
        """
        user_id = payload.get(const.DATA_USER_ID, "")
        badge_id = payload.get(const.DATA_BADGE_ID, "")
        if not user_id or not badge_id:
            return

        self.hass.bus.async_fire(const.BUS_EVENT_BADGE_READY, dict(payload))

        if not self.notify_service:
            return

        self.hass.async_create_task(
            self._send_notification(
                self.notify_service,
                const.NOTIF_TITLE_BADGE_READY,
                const.NOTIF_MESSAGE_BADGE_READY_FMT.format(badge_id=badge_id),
                extra_data={
                    const.NOTIFY_TAG: f"{const.DOMAIN}_{user_id}_{badge_id}",
                    const.DATA_USER_ID: user_id,
                    const.DATA_BADGE_ID: badge_id,
                },
            )
        )

    @callback
    def _handle_badge_opened(self, payload: dict[str, Any]) -> None:
        """Handle BADGE_OPENED - fire bus event for other collaborators."""
        if not payload.get(const.DATA_BADGE_ID):
            return
        self.hass.bus.async_fire(const.BUS_EVENT_BADGE_OPENED, dict(payload))

    # =========================================================================
    # Core Notification Send Method
    # =========================================================================

    async def _send_notification(
        self,
        notify_service: str,
        title: str,
        message: str,
        extra_data: dict[str, Any] | None = None,
    ) -> None:
        """Send a notification using the specified notify service.

        Gracefully handles missing notification services (mobile app not
        configured yet, service renamed).
        """
        if "." not in notify_service:
            domain = const.NOTIFY_DOMAIN
            service = notify_service
        else:
            domain, service = notify_service.split(".", 1)

        if not self.hass.services.has_service(domain, service):
            const.LOGGER.warning(
                "Notification service '%s.%s' not available - skipping notification",
                domain,
                service,
            )
            return

        try:
            await async_send_notification(
                self.hass, notify_service, title, message, extra_data
            )
            const.LOGGER.debug("Notification sent via '%s.%s'", domain, service)
        except Exception as err:  # noqa: BLE001
            # Runs in a fire-and-forget task; an escaping error would only
            # surface as "Task exception was never retrieved".
            const.LOGGER.error(
                "Unexpected error sending notification via '%s.%s': %s",
                domain,
                service,
                err,
            )
