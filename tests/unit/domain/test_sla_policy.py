"""Tests for SLA deadline computation."""

from datetime import timedelta

import pytest

from tests.fakes import NOW

from repair_lifecycle.domain.policies.sla import compute_sla_deadlines
from repair_lifecycle.domain.value_objects.enums import CustomerTier, Priority
from repair_lifecycle.domain.value_objects.lifecycle_config import SlaPolicy

policy = SlaPolicy()


@pytest.mark.parametrize(
    "priority, response_h, completion_h",
    [
        (Priority.URGENT, 2, 24),
        (Priority.HIGH, 4, 48),
        (Priority.MEDIUM, 8, 72),
        (Priority.LOW, 24, 120),
    ],
)
def test_standard_tier_base_hours(priority, response_h, completion_h):
    d = compute_sla_deadlines(priority, CustomerTier.STANDARD, NOW, policy)
    assert d.response == NOW + timedelta(hours=response_h)
    assert d.completion == NOW + timedelta(hours=completion_h)


def test_enterprise_halves_windows():
    d = compute_sla_deadlines(Priority.HIGH, CustomerTier.ENTERPRISE, NOW, policy)
    assert d.response == NOW + timedelta(hours=2)
    assert d.completion == NOW + timedelta(hours=24)


def test_premium_scales_by_three_quarters():
    d = compute_sla_deadlines(Priority.MEDIUM, CustomerTier.PREMIUM, NOW, policy)
    assert d.response == NOW + timedelta(hours=6)
    assert d.completion == NOW + timedelta(hours=54)


def test_response_always_before_completion():
    for priority in Priority:
        for tier in CustomerTier:
            d = compute_sla_deadlines(priority, tier, NOW, policy)
            assert NOW < d.response < d.completion
