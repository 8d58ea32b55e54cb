"""Port interface for technician persistence."""

from abc import ABC, abstractmethod

from repair_lifecycle.domain.entities.technician import Technician


class TechnicianRepository(ABC):
    @abstractmethod
    async def get_by_id(self, technician_id: str) -> Technician | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[Technician]:
        ...

    @abstractmethod
    async def get_many(self, technician_ids: set[str]) -> list[Technician]:
        ...

    @abstractmethod
    async def save(self, technician: Technician) -> Technician:
        ...

    @abstractmethod
    async def add_active_job(
        self, technician_id: str, job_id: str, hours: float = 0.0
    ) -> bool:
        """Atomically add ``job_id`` and its estimated ``hours`` to the active set.

        Returns False when the job was already counted (idempotent per job id).
        """
        ...

    @abstractmethod
    async def remove_active_job(self, technician_id: str, job_id: str) -> bool:
        """Atomically remove ``job_id`` and its hours. Returns False when it was not counted."""
        ...
