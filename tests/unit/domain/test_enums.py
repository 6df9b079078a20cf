"""Tests for domain enums."""

from app.domain.value_objects.enums import (
    ACTIVE_ORDER_STATUSES,
    ASSIGNABLE_ORDER_STATUSES,
    TERMINAL_ORDER_STATUSES,
    AgentAvailability,
    OrderStatus,
)


def test_order_statuses_count():
    assert len(OrderStatus) == 8


def test_availability_values():
    assert AgentAvailability.ONLINE.value == "ONLINE"
    assert AgentAvailability.OFFLINE.value == "OFFLINE"


def test_active_statuses_hold_agent_load():
    assert ACTIVE_ORDER_STATUSES == {
        OrderStatus.ASSIGNED,
        OrderStatus.PICKED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    }


def test_status_groups_are_disjoint():
    assert not ACTIVE_ORDER_STATUSES & TERMINAL_ORDER_STATUSES
    assert not ACTIVE_ORDER_STATUSES & ASSIGNABLE_ORDER_STATUSES
    assert not TERMINAL_ORDER_STATUSES & ASSIGNABLE_ORDER_STATUSES
