"""Seed the technician roster from a CSV file.

Usage:
    python -m repair_lifecycle.tools.seed_technicians
    python -m repair_lifecycle.tools.seed_technicians --file data/technicians.csv

Expected columns: id, name, skills, latitude, longitude, performance_score,
committed_hours. Skills are separated by commas or semicolons. Re-running the
seed updates profiles in place and keeps each technician's active jobs.
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import logging
import sys
from pathlib import Path

from repair_lifecycle.adapters.persistence.database import async_session_factory
from repair_lifecycle.adapters.persistence.repositories import SqlTechnicianRepository
from repair_lifecycle.application.ports.technician_repo import TechnicianRepository
from repair_lifecycle.domain.entities.technician import Technician
from repair_lifecycle.domain.value_objects.geo_point import GeoPoint

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


def _float(raw: str | None, default: float | None = None) -> float | None:
    if raw is None or not raw.strip():
        return default
    return float(raw.strip().replace(",", "."))


def _skills(raw: str | None) -> set[str]:
    if not raw:
        return set()
    return {s.strip() for s in raw.replace(";", ",").split(",") if s.strip()}


def load_technicians(file_path: Path) -> list[Technician]:
    """Read technician profiles; rows without an id are skipped."""
    technicians = []
    with open(file_path, encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")
        for line, row in enumerate(reader, start=2):
            row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k}
            tech_id = row.get("id")
            if not tech_id:
                logger.warning("%s:%d has no technician id, skipping", file_path.name, line)
                continue
            latitude = _float(row.get("latitude"))
            longitude = _float(row.get("longitude"))
            location = None
            if latitude is not None and longitude is not None:
                location = GeoPoint(latitude=latitude, longitude=longitude)
            technicians.append(
                Technician(
                    id=tech_id,
                    name=row.get("name") or tech_id,
                    skills=_skills(row.get("skills")),
                    current_location=location,
                    performance_score=_float(row.get("performance_score"), 0.0),
                    committed_hours=_float(row.get("committed_hours"), 0.0),
                )
            )

    logger.info("Loaded %d technicians from %s", len(technicians), file_path.name)
    return technicians


async def seed(repo: TechnicianRepository, technicians: list[Technician]) -> dict[str, int]:
    """Insert new technicians and refresh existing profiles. Returns counts."""
    counts = {"created": 0, "updated": 0}
    for technician in technicians:
        existing = await repo.get_by_id(technician.id)
        if existing is None:
            counts["created"] += 1
        else:
            # Workload belongs to the running service, not to the roster file.
            technician.active_job_ids = set(existing.active_job_ids)
            technician.job_hours = dict(existing.job_hours)
            technician.availability_windows = list(existing.availability_windows)
            counts["updated"] += 1
        await repo.save(technician)

    logger.info(
        "Seed complete: %d created, %d updated", counts["created"], counts["updated"]
    )
    return counts


def main():
    parser = argparse.ArgumentParser(description="Seed technicians from a CSV file")
    parser.add_argument(
        "--file", type=str, default="data/technicians.csv",
        help="CSV with technician profiles (default: data/technicians.csv)",
    )
    args = parser.parse_args()

    path = Path(args.file)
    if not path.exists():
        logger.error("CSV file not found: %s", path)
        sys.exit(1)

    technicians = load_technicians(path)
    asyncio.run(seed(SqlTechnicianRepository(async_session_factory), technicians))


if __name__ == "__main__":
    main()
