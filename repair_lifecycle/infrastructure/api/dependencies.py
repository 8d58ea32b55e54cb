"""FastAPI dependency injection — wires adapters into use cases.

The lifecycle service owns the per-job lock registry, so it is built once per
process (see ``main.lifespan``) and shared by every request.
"""

from __future__ import annotations

import logging

from fastapi import Request

from repair_lifecycle.adapters.notifications.logging_adapter import LoggingNotifier
from repair_lifecycle.adapters.notifications.webhook_adapter import WebhookNotifier
from repair_lifecycle.adapters.persistence.database import async_session_factory
from repair_lifecycle.adapters.persistence.repositories import (
    SqlJobRepository,
    SqlTechnicianRepository,
)
from repair_lifecycle.application.ports.notifier_port import NotifierPort
from repair_lifecycle.application.services.locks import LockRegistry
from repair_lifecycle.application.use_cases.job_lifecycle import JobLifecycleService
from repair_lifecycle.config import Settings, lifecycle_config

logger = logging.getLogger(__name__)


def build_notifier(s: Settings) -> NotifierPort:
    if s.notification_webhook_url:
        logger.info("Using webhook notifier at %s", s.notification_webhook_url)
        return WebhookNotifier(s.notification_webhook_url, timeout=s.notification_timeout_seconds)
    logger.info("No NOTIFICATION_WEBHOOK_URL set, notifications go to the log")
    return LoggingNotifier()


def build_lifecycle_service(s: Settings) -> JobLifecycleService:
    config = lifecycle_config(s)
    logger.info(
        "Lifecycle config v%s: weights=%s, max_reworks=%d",
        config.version, config.scoring.weights.as_dict(), config.max_reworks,
    )
    return JobLifecycleService(
        config=config,
        job_repo=SqlJobRepository(async_session_factory),
        technician_repo=SqlTechnicianRepository(async_session_factory),
        notifier=build_notifier(s),
        locks=LockRegistry(timeout=s.lock_timeout_seconds),
        store_timeout=s.store_timeout_seconds,
        notification_timeout=s.notification_timeout_seconds,
    )


def get_lifecycle_service(request: Request) -> JobLifecycleService:
    return request.app.state.lifecycle
