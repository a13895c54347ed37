"""State classes for the AGI race simulation.

`GameState` is the root aggregate. It is owned by the caller between turns and
mutated in place by the turn engine only.
"""
from typing import Dict, List, Optional, Sequence, Set

import attrs

from agirace.core.constants import MAX_STAT, MIN_STAT, TURN_START_QUARTER, TURN_START_YEAR
from agirace.core.enums import Branch, FactionType, Openness, Outcome, ResourceKey, ScoreKey, StatKey
from agirace.core.utils import clamp

__all__ = [
    "ActionChoice",
    "Branch",
    "FactionState",
    "FactionTemplate",
    "FactionType",
    "GameState",
    "Openness",
    "Outcome",
    "ResourceKey",
    "Resources",
    "ScoreKey",
    "StatKey",
    "StrategyProfile",
    "create_initial_state",
]


@attrs.define
class Resources:
    """A faction's six resources, each kept within [MIN_STAT, MAX_STAT]."""
    compute: float = 0.0
    talent: float = 0.0
    capital: float = 0.0
    data: float = 0.0
    influence: float = 0.0
    trust: float = 0.0

    def get(self, key: ResourceKey) -> float:
        return getattr(self, ResourceKey(key).value)

    def set(self, key: ResourceKey, value: float):
        setattr(self, ResourceKey(key).value, value)

    def to_dict(self) -> Dict[str, float]:
        return {key.value: self.get(key) for key in ResourceKey}


@attrs.define(frozen=True)
class StrategyProfile:
    """Decision weights (0..100) consumed by AI deciders. Never mutated by the engine."""
    risk_tolerance: float = 50.0
    safety_focus: float = 50.0
    openness_preference: float = 50.0
    espionage_focus: float = 25.0


def _empty_research() -> Dict[Branch, float]:
    return {branch: 0.0 for branch in Branch}


@attrs.define
class FactionState:
    """One lab or government."""
    id: str
    name: str
    type: FactionType
    resources: Resources
    safety_culture: float = 50.0
    opsec: float = 50.0
    capability_score: float = 0.0
    safety_score: float = 0.0
    research: Dict[Branch, float] = attrs.field(factory=_empty_research)
    unlocked_techs: Set[str] = attrs.field(factory=set)
    exposure: float = 0.0
    can_deploy_agi: bool = False
    strategy: StrategyProfile = attrs.field(factory=StrategyProfile)

    @property
    def is_lab(self) -> bool:
        return self.type == FactionType.LAB

    @property
    def is_government(self) -> bool:
        return self.type == FactionType.GOVERNMENT

    @property
    def bloc(self) -> str:
        """Geopolitical bloc, inferred from the id prefix (e.g. "us" for "us_lab_a")."""
        return self.id.split("_", 1)[0]

    def get_score(self, key: ScoreKey) -> float:
        return getattr(self, ScoreKey(key).value)

    def get_stat(self, key: StatKey) -> float:
        return getattr(self, StatKey(key).value)


@attrs.define
class ActionChoice:
    """One action a faction wants to take this turn."""
    action_id: str
    openness: Openness = Openness.OPEN
    target_faction_id: Optional[str] = None


@attrs.define
class GameState:
    """Global game state."""
    factions: Dict[str, FactionState] = attrs.field(factory=dict)
    turn: int = 0
    year: int = TURN_START_YEAR
    quarter: int = TURN_START_QUARTER
    global_safety: float = 0.0
    game_over: bool = False
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    outcome: Optional[Outcome] = None
    log: List[str] = attrs.field(factory=list)
    # Explicit global-safety effects applied during the current turn.
    # Folded into global_safety by the end-of-turn recompute, then reset.
    global_safety_drift: float = 0.0

    def advance_calendar(self):
        """Move to the next quarter."""
        self.turn += 1
        self.quarter += 1
        if self.quarter > 4:
            self.quarter = 1
            self.year += 1

    def get_faction(self, faction_id: Optional[str]) -> Optional[FactionState]:
        if faction_id is None:
            return None
        return self.factions.get(faction_id)

    def labs(self) -> List[FactionState]:
        return [f for f in self.factions.values() if f.is_lab]

    def governments(self) -> List[FactionState]:
        return [f for f in self.factions.values() if f.is_government]

    @property
    def date_label(self) -> str:
        return f"{self.year} Q{self.quarter}"


@attrs.define(frozen=True)
class FactionTemplate:
    """Starting values for one faction."""
    id: str
    name: str
    type: FactionType
    resources: Dict[str, float]
    safety_culture: float
    opsec: float
    capability_score: float
    safety_score: float
    strategy: StrategyProfile = attrs.field(factory=StrategyProfile)
    description: str = ""

    def build(self) -> FactionState:
        """Create a fresh faction, clamping every starting value into range."""
        resources = Resources(**{
            key.value: clamp(float(self.resources.get(key.value, 0.0)), MIN_STAT, MAX_STAT)
            for key in ResourceKey
        })
        return FactionState(
            id=self.id,
            name=self.name,
            type=FactionType(self.type),
            resources=resources,
            safety_culture=clamp(self.safety_culture, MIN_STAT, MAX_STAT),
            opsec=clamp(self.opsec, MIN_STAT, MAX_STAT),
            capability_score=max(MIN_STAT, self.capability_score),
            safety_score=max(MIN_STAT, self.safety_score),
            strategy=self.strategy,
        )


def create_initial_state(templates: Optional[Sequence[FactionTemplate]] = None) -> GameState:
    """Build the turn-0 state from faction templates (defaults to the built-in roster)."""
    from agirace.core.stats import recompute_global_safety

    if templates is None:
        from agirace.data.factions import FACTION_TEMPLATES
        templates = FACTION_TEMPLATES

    state = GameState()
    for template in templates:
        if template.id in state.factions:
            raise ValueError(f"Duplicate faction id: {template.id}")
        state.factions[template.id] = template.build()
    recompute_global_safety(state)
    return state
