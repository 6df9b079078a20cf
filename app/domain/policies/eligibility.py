"""EligibilityPolicy — which agents may take a new order, and in what order."""

from __future__ import annotations

from datetime import datetime, timezone

from app.domain.entities.agent import Agent

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_eligible(agent: Agent) -> bool:
    """ONLINE, owning account ACTIVE, and below its capacity ceiling."""
    return agent.is_online() and agent.is_account_active() and agent.has_capacity()


def _created_key(agent: Agent) -> datetime:
    created = agent.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def rank_candidates(agents: list[Agent]) -> list[Agent]:
    """Least-loaded first; ties broken by onboarding time, then id."""
    return sorted(agents, key=lambda a: (a.current_order_count, _created_key(a), a.id))


def select_eligible(agents: list[Agent], exclude_agent_id: str | None = None) -> list[Agent]:
    eligible = [
        a for a in agents
        if is_eligible(a) and a.id != exclude_agent_id
    ]
    return rank_candidates(eligible)
