"""Pytest configuration and shared fixtures."""

import pytest

SETTINGS_ENV = (
    "SCORING_WEIGHT_SKILL",
    "SCORING_WEIGHT_AVAILABILITY",
    "SCORING_WEIGHT_LOCATION",
    "SCORING_WEIGHT_PERFORMANCE",
    "SCORING_WEIGHT_WORKLOAD",
    "MAX_TRAVEL_KM",
    "MAX_REWORKS",
    "AUTO_ASSIGN_ON_CREATE",
    "LIFECYCLE_CONFIG_VERSION",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Process environment without any lifecycle tuning variables."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
