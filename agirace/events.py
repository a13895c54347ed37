"""Random events: selection between turns and application of the chosen response.

Event content is immutable data. Applying a choice goes through the same
effect dispatcher (and so the same bounded mutators) as tech effects.
"""
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

import attrs

from agirace.core.effects import (
    Effect,
    EffectValidationError,
    ExposureEffect,
    GlobalSafetyEffect,
    ResearchEffect,
    apply_effect,
    parse_effect,
)
from agirace.core.game_state import FactionState, GameState

logger = logging.getLogger(__name__)

# Chance that any event fires in a given turn
EVENT_CHANCE = 0.45
# Events seen this recently are not repeated
RECENT_EVENT_WINDOW = 3


class EffectTarget(str, Enum):
    FACTION = "faction"
    ALL_LABS = "all_labs"
    ALL_FACTIONS = "all_factions"


FACTION_ONLY_EFFECTS = (ResearchEffect, ExposureEffect)


@attrs.frozen
class EventEffect:
    """An effect plus who it lands on: the responding faction, every lab, or everyone."""
    effect: Effect
    target: EffectTarget = attrs.field(default=EffectTarget.FACTION, converter=EffectTarget)

    @target.validator
    def _check_target(self, attribute, value):
        if isinstance(self.effect, FACTION_ONLY_EFFECTS) and value != EffectTarget.FACTION:
            raise ValueError(f"{self.effect.kind} effects can only target the responding faction")


@attrs.frozen
class EventChoice:
    id: str
    label: str
    description: str
    effects: Tuple[EventEffect, ...] = attrs.field(default=(), converter=tuple)


@attrs.frozen
class EventDefinition:
    id: str
    title: str
    description: str
    weight: float
    choices: Tuple[EventChoice, ...] = attrs.field(converter=tuple)
    min_turn: Optional[int] = None
    max_turn: Optional[int] = None

    def is_eligible(self, turn: int) -> bool:
        if self.min_turn is not None and turn < self.min_turn:
            return False
        if self.max_turn is not None and turn > self.max_turn:
            return False
        return True

    def get_choice(self, choice_id: str) -> Optional[EventChoice]:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


def parse_event_effect(raw: Any) -> EventEffect:
    """Decode a raw JSON event effect (an effect object with an optional "target")."""
    effect = parse_effect(raw)
    try:
        return EventEffect(effect, raw.get("target", EffectTarget.FACTION.value))
    except ValueError as e:
        raise EffectValidationError(str(e)) from None


def select_event(
    events: Sequence[EventDefinition],
    state: GameState,
    rng: Callable[[], float],
    history: Sequence[str] = (),
    event_chance: float = EVENT_CHANCE,
) -> Optional[EventDefinition]:
    """Maybe pick an event for this turn.

    Draws once to decide whether any event fires. If one does, draws once more
    for a weighted pick among events open at this turn and not seen in the last
    few turns.
    """
    if rng() > event_chance:
        return None
    recent = set(history[-RECENT_EVENT_WINDOW:])
    eligible = [event for event in events if event.is_eligible(state.turn) and event.id not in recent]
    if not eligible:
        return None

    total_weight = sum(event.weight for event in eligible)
    roll = rng() * total_weight
    for event in eligible:
        roll -= event.weight
        if roll <= 0:
            return event
    return eligible[-1]


def _targets(state: GameState, faction: FactionState, event_effect: EventEffect) -> List[FactionState]:
    if isinstance(event_effect.effect, GlobalSafetyEffect):
        return [faction]
    if event_effect.target == EffectTarget.ALL_LABS:
        return state.labs()
    if event_effect.target == EffectTarget.ALL_FACTIONS:
        return list(state.factions.values())
    return [faction]


def apply_event_effects(state: GameState, effects: Sequence[EventEffect], faction_id: str):
    """Apply externally resolved event effects on behalf of a faction."""
    faction = state.get_faction(faction_id)
    if faction is None:
        logger.warning(f"Ignoring event effects for unknown faction {faction_id!r}")
        return
    for event_effect in effects:
        # world-level effects apply once regardless of the target
        for target in _targets(state, faction, event_effect):
            apply_effect(state, target, event_effect.effect)


def resolve_event_choice(state: GameState, event: EventDefinition, choice_id: str, faction_id: str) -> EventChoice:
    """Apply the chosen response to an event and note it in the game log."""
    choice = event.get_choice(choice_id)
    if choice is None:
        raise ValueError(f"Event {event.id} has no choice {choice_id!r}")
    faction = state.get_faction(faction_id)
    if faction is None:
        raise ValueError(f"Unknown faction {faction_id!r}")
    state.log.append(f"{event.title}: {faction.name} chose to {choice.label.lower()}.")
    apply_event_effects(state, choice.effects, faction_id)
    logger.info(f"Event {event.id}: {faction_id} chose {choice.id}")
    return choice
