"""Bloc-based target selection for government actions."""
from typing import Optional

from agirace.core.game_state import FactionState, GameState


def allied_labs(state: GameState, faction: FactionState):
    return [lab for lab in state.labs() if lab.bloc == faction.bloc]


def rival_labs(state: GameState, faction: FactionState):
    return [lab for lab in state.labs() if lab.bloc != faction.bloc]


def pick_subsidy_target(state: GameState, government: FactionState) -> Optional[FactionState]:
    """The same-bloc lab with the lowest capability score (support the laggard)."""
    candidates = allied_labs(state, government)
    if not candidates:
        return None
    # min() keeps the first of equal scores, i.e. insertion order
    return min(candidates, key=lambda lab: lab.capability_score)


def pick_regulation_target(state: GameState, government: FactionState) -> Optional[FactionState]:
    """The highest-capability lab outside the government's bloc."""
    candidates = rival_labs(state, government)
    if not candidates:
        return None
    return max(candidates, key=lambda lab: lab.capability_score)
