"""Tests for domain enums."""

from repair_lifecycle.domain.value_objects.enums import (
    LIFECYCLE_ORDER,
    CustomerTier,
    JobState,
    PartAvailability,
    Priority,
)


def test_eleven_canonical_states_plus_escalated():
    assert len(LIFECYCLE_ORDER) == 11
    assert len(JobState) == 12
    assert JobState.ESCALATED not in LIFECYCLE_ORDER


def test_lifecycle_order_starts_created_ends_delivered():
    assert LIFECYCLE_ORDER[0] == JobState.CREATED
    assert LIFECYCLE_ORDER[-1] == JobState.DELIVERED


def test_only_delivered_is_terminal():
    assert [s for s in JobState if s.is_terminal] == [JobState.DELIVERED]


def test_open_states():
    assert not JobState.DELIVERED.is_open
    assert not JobState.ESCALATED.is_open
    assert JobState.PARTS_ORDERED.is_open


def test_values_are_stable_strings():
    assert JobState("AWAITING_APPROVAL") is JobState.AWAITING_APPROVAL
    assert Priority.URGENT.value == "URGENT"
    assert CustomerTier.ENTERPRISE.value == "ENTERPRISE"
    assert PartAvailability.ORDER_REQUIRED.value == "ORDER_REQUIRED"
