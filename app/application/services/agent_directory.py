"""AgentDirectory — candidate set for a pending order."""

from __future__ import annotations

from app.application.ports.agent_repo import AgentRepository
from app.domain.entities.agent import Agent
from app.domain.policies.eligibility import select_eligible


class AgentDirectory:
    def __init__(self, agent_repo: AgentRepository):
        self._agents = agent_repo

    async def list_eligible_agents(self, exclude_agent_id: str | None = None) -> list[Agent]:
        """ONLINE, ACTIVE-account agents with spare capacity, least loaded first.

        An empty list is the normal "go to queue" answer, not an error.
        """
        online = await self._agents.list_online()
        return select_eligible(online, exclude_agent_id=exclude_agent_id)
