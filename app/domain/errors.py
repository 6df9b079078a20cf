"""Domain errors raised by the distribution engine."""

from __future__ import annotations


class DistributionError(Exception):
    """Base class for order distribution errors."""


class StoreUnavailable(DistributionError):
    """A read or write against the order/agent/queue stores failed.

    Nothing was committed; the caller may retry the whole operation.
    """


# Name used by callers that think of the failure as a transient commit error.
TransientStoreError = StoreUnavailable


class InvariantViolation(StoreUnavailable):
    """A commit would have broken an order/agent invariant and was aborted."""


class CapacityExceeded(InvariantViolation):
    """Incrementing the agent's load would exceed its max_order_capacity."""

    def __init__(self, agent_id: str):
        super().__init__(f"Agent {agent_id} has no remaining capacity")
        self.agent_id = agent_id


class NotFound(DistributionError):
    """A referenced order or agent does not exist."""


class OrderNotFound(NotFound):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class AgentNotFound(NotFound):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


class InvalidTransition(DistributionError):
    """The operation is not allowed from the order's current status."""
