"""Webhook notifier — implements NotifierPort by POSTing events as JSON."""

from __future__ import annotations

import logging

import httpx

from repair_lifecycle.application.ports.notifier_port import NotificationEvent, NotifierPort
from repair_lifecycle.domain.errors import NotificationDispatchError

logger = logging.getLogger(__name__)


def event_payload(event: NotificationEvent) -> dict:
    return {
        "job_id": event.job_id,
        "kind": event.kind,
        "action": event.action.value,
        "state": event.state.value,
        "level": event.level,
        "occurred_at": event.occurred_at.isoformat(),
        "message": event.message,
    }


class WebhookNotifier(NotifierPort):
    """Hands events to the delivery service (email / SMS / push) over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._client = client

    async def dispatch(self, event: NotificationEvent) -> None:
        payload = event_payload(event)
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._url, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationDispatchError(
                f"Webhook rejected {event.kind} for job {event.job_id}: "
                f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationDispatchError(
                f"Webhook unreachable for job {event.job_id}: {exc}"
            ) from exc

        logger.info(
            "Dispatched %s (%s) for job %s", event.kind, event.action.value, event.job_id
        )
