"""Port interface for job record persistence (the JobRecord Store)."""

from abc import ABC, abstractmethod

from repair_lifecycle.domain.entities.job import Job


class JobRepository(ABC):
    @abstractmethod
    async def get_by_id(self, job_id: str) -> Job | None:
        ...

    @abstractmethod
    async def add(self, job: Job) -> Job:
        """Insert a new job record. Fails if the id already exists."""
        ...

    @abstractmethod
    async def save(self, job: Job) -> Job:
        """Persist the full record of an existing job."""
        ...

    @abstractmethod
    async def get_open(self) -> list[Job]:
        """Jobs that are neither DELIVERED nor ESCALATED nor archived."""
        ...
