"""RoundRobinPolicy — rotating agent selection over a ranked candidate list."""

from __future__ import annotations

from app.domain.entities.agent import Agent

# Cursor value before the first assignment; the first pick is the list head.
INITIAL_CURSOR = -1


def pick_next(candidates: list[Agent], cursor: int) -> tuple[Agent, int]:
    """Advance the rotation cursor and pick the agent it lands on.

    1. new_cursor = (cursor + 1) mod len(candidates)
    2. chosen = candidates[new_cursor]

    The cursor is an index into whatever list the caller passes, so rotation
    is only strict while the candidate set stays the same between calls.
    Candidates must already be ranked (see ``rank_candidates``).

    Args:
        candidates: non-empty, ranked list of eligible agents.
        cursor: the cursor stored after the previous pick.

    Returns:
        (chosen_agent, new_cursor)

    Raises:
        ValueError: if candidates list is empty.
    """
    if not candidates:
        raise ValueError("Cannot pick from an empty candidate list")

    index = (cursor + 1) % len(candidates)
    return candidates[index], index
