"""Logging notifier — used when no webhook is configured."""

import logging

from repair_lifecycle.application.ports.notifier_port import NotificationEvent, NotifierPort

logger = logging.getLogger(__name__)


class LoggingNotifier(NotifierPort):
    async def dispatch(self, event: NotificationEvent) -> None:
        logger.warning(
            "[%s] job %s level=%s state=%s: %s",
            event.action.value, event.job_id, event.level, event.state.value, event.message,
        )
