"""Technology tree nodes and the per-turn unlock pass."""
import logging
from typing import AbstractSet, List, Optional, Sequence, Tuple

import attrs

from agirace.core.effects import Effect, apply_effect
from agirace.core.enums import Branch
from agirace.core.game_state import FactionState, GameState

logger = logging.getLogger(__name__)


@attrs.frozen
class TechNode:
    """An immutable tech tree entry."""
    id: str
    name: str
    branch: Branch = attrs.field(converter=Branch)
    cost: float
    prereqs: Tuple[str, ...] = attrs.field(default=(), converter=tuple)
    effects: Tuple[Effect, ...] = attrs.field(default=(), converter=tuple)
    description: str = ""


def is_tech_available(faction: FactionState, tech: TechNode, unlocked: Optional[AbstractSet[str]] = None) -> bool:
    """True when the tech is not yet unlocked and all its prereqs are.

    `unlocked` overrides the faction's current set of unlocked techs.
    """
    if unlocked is None:
        unlocked = faction.unlocked_techs
    if tech.id in unlocked:
        return False
    return all(prereq in unlocked for prereq in tech.prereqs)


def unlock_available_techs(state: GameState, faction: FactionState, tech_tree: Sequence[TechNode]) -> List[str]:
    """Unlock every tech the faction can afford and return their ids.

    Prerequisites are checked against the techs unlocked before this pass
    started, so a tech unlocked now cannot enable a dependent tech until the
    next turn. Research is not spent.
    """
    already_unlocked = frozenset(faction.unlocked_techs)
    unlocked = []
    for tech in tech_tree:
        if not is_tech_available(faction, tech, already_unlocked):
            continue
        if faction.research[tech.branch] < tech.cost:
            continue

        faction.unlocked_techs.add(tech.id)
        for effect in tech.effects:
            apply_effect(state, faction, effect)
        unlocked.append(tech.id)
        logger.debug(f"{faction.name} unlocked {tech.id} ({tech.branch.value} research {faction.research[tech.branch]:.1f})")
    return unlocked
