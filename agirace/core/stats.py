"""Bounded mutators for faction resources, scores, stats and research.

These are the only functions that change a faction's numbers. Actions, tech
effects, event choices and gamemaster directives all go through them, so every
value stays within the range its mutator accepts.
"""
import logging
from typing import Mapping, Union

from agirace.core.constants import MAX_STAT, MIN_STAT
from agirace.core.enums import Branch, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import FactionState, GameState
from agirace.core.utils import clamp, round1

logger = logging.getLogger(__name__)

# Research gain per resource point, by branch
RESEARCH_RESOURCE_WEIGHTS = {
    Branch.CAPABILITIES: {"compute": 0.15, "talent": 0.12, "data": 0.1},
    Branch.SAFETY: {"talent": 0.1, "safety_culture": 0.15, "trust": 0.05},
    Branch.OPS: {"capital": 0.1, "compute": 0.05, "talent": 0.05},
    Branch.POLICY: {"influence": 0.1, "trust": 0.05},
}

# Floor for a faction's weight in the global safety aggregate
MIN_SAFETY_WEIGHT = 10.0


def apply_resource_delta(faction: FactionState, deltas: Mapping[Union[ResourceKey, str], float]):
    """Add deltas to resources, clamping each into [MIN_STAT, MAX_STAT]."""
    for key, delta in deltas.items():
        if not delta:
            continue
        key = ResourceKey(key)
        current = faction.resources.get(key)
        faction.resources.set(key, clamp(current + delta, MIN_STAT, MAX_STAT))


def apply_score_delta(faction: FactionState, key: Union[ScoreKey, str], delta: float):
    """Capability and safety scores are unbounded upward but never negative."""
    key = ScoreKey(key)
    setattr(faction, key.value, max(MIN_STAT, faction.get_score(key) + delta))


def apply_stat_delta(faction: FactionState, key: Union[StatKey, str], delta: float):
    key = StatKey(key)
    setattr(faction, key.value, clamp(faction.get_stat(key) + delta, MIN_STAT, MAX_STAT))


def apply_research_delta(faction: FactionState, branch: Union[Branch, str], delta: float):
    branch = Branch(branch)
    faction.research[branch] = max(0.0, faction.research[branch] + delta)


def apply_exposure_delta(faction: FactionState, delta: float):
    faction.exposure = max(0.0, faction.exposure + delta)


def apply_global_safety_delta(state: GameState, delta: float):
    """Queue a global safety shift; it is reconciled by the end-of-turn recompute."""
    state.global_safety_drift += delta


def compute_research_gain(faction: FactionState, branch: Union[Branch, str], base: float) -> float:
    """Research produced by one action: the action's base plus resource-weighted terms."""
    branch = Branch(branch)
    gain = base
    for name, weight in RESEARCH_RESOURCE_WEIGHTS[branch].items():
        if name == "safety_culture":
            value = faction.safety_culture
        else:
            value = faction.resources.get(ResourceKey(name))
        gain += value * weight
    return gain


def compute_global_safety(state: GameState) -> float:
    """Capability-weighted mean of all factions' safety scores, rounded to one decimal.

    Each faction weighs max(10, capability_score), so frontier labs dominate the
    aggregate but no faction drops out of it entirely. Returns 0 with no factions.
    """
    factions = list(state.factions.values())
    total_weight = sum(max(MIN_SAFETY_WEIGHT, f.capability_score) for f in factions)
    if total_weight == 0:
        return 0.0
    weighted = sum(f.safety_score * max(MIN_SAFETY_WEIGHT, f.capability_score) for f in factions)
    return round1(weighted / total_weight)


def recompute_global_safety(state: GameState) -> float:
    """Fold this turn's drift into the aggregate and clamp into [MIN_STAT, MAX_STAT]."""
    aggregate = compute_global_safety(state)
    state.global_safety = clamp(round1(aggregate + state.global_safety_drift), MIN_STAT, MAX_STAT)
    if state.global_safety_drift:
        logger.debug(f"Global safety {aggregate} adjusted by drift {state.global_safety_drift:+.1f}")
    state.global_safety_drift = 0.0
    return state.global_safety
