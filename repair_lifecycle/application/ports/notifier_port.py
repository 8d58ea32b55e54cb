"""Port interface for the notification collaborator (email / SMS / push)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from repair_lifecycle.domain.value_objects.enums import EscalationAction, JobState


@dataclass(frozen=True)
class NotificationEvent:
    job_id: str
    kind: str  # "escalation" | "rework_limit"
    action: EscalationAction
    state: JobState
    occurred_at: datetime
    level: int | None = None
    message: str = ""


class NotifierPort(ABC):
    @abstractmethod
    async def dispatch(self, event: NotificationEvent) -> None:
        """Hand the event to the delivery side. Fire-and-forget.

        Raises NotificationDispatchError when the collaborator rejects it.
        """
        ...
