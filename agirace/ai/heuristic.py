"""Heuristic AI: picks actions and event responses from a faction's strategy profile.

Every random choice is drawn from the injected rng, so a seeded game replays
exactly.
"""
import logging
from typing import Callable, List, Optional

from agirace.core.constants import ACTION_POINTS_PER_TURN, SAFETY_THRESHOLDS, SUBSIDY
from agirace.core.effects import GlobalSafetyEffect, ResearchEffect, ResourceEffect, ScoreEffect, StatEffect
from agirace.core.enums import FactionType, Openness, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import ActionChoice, FactionState, GameState
from agirace.core.targeting import pick_regulation_target, pick_subsidy_target
from agirace.events import EventChoice, EventDefinition

logger = logging.getLogger(__name__)

Rng = Callable[[], float]

# Strategy value above which a faction spends an action on espionage
ESPIONAGE_FOCUS_THRESHOLD = 35.0
LOW_CAPITAL = 40.0
LOW_COMPUTE = 60.0
SPARE_LAB_ACTIONS = ("policy", "deploy_products", "build_compute")


def roll_openness(preference: float, rng: Rng) -> Openness:
    """Open with probability preference/100."""
    return Openness.OPEN if rng() * 100 < preference else Openness.SECRET


def _pick_one(options, rng: Rng):
    index = min(int(rng() * len(options)), len(options) - 1)
    return options[index]


def _top_rival_lab(state: GameState, faction: FactionState) -> Optional[FactionState]:
    labs = [lab for lab in state.labs() if lab.id != faction.id]
    if not labs:
        return None
    return max(labs, key=lambda lab: lab.capability_score)


def _is_safe_to_deploy(state: GameState, faction: FactionState) -> bool:
    return (faction.safety_score >= SAFETY_THRESHOLDS.faction
            and state.global_safety >= SAFETY_THRESHOLDS.global_safety)


def decide_lab_actions(state: GameState, faction: FactionState, rng: Rng) -> List[ActionChoice]:
    strategy = faction.strategy
    if faction.can_deploy_agi and _is_safe_to_deploy(state, faction):
        return [ActionChoice("deploy_agi", Openness.OPEN)]

    openness = roll_openness(strategy.openness_preference, rng)
    safety_gap = SAFETY_THRESHOLDS.faction - faction.safety_score
    if safety_gap > 0 or strategy.safety_focus > strategy.risk_tolerance:
        choices = [ActionChoice("research_safety", openness)]
    else:
        choices = [ActionChoice("research_capabilities", openness)]

    if faction.resources.capital < LOW_CAPITAL:
        choices.append(ActionChoice("deploy_products", Openness.OPEN))
    elif faction.resources.compute < LOW_COMPUTE:
        choices.append(ActionChoice("build_compute", Openness.OPEN))
    else:
        choices.append(ActionChoice(_pick_one(SPARE_LAB_ACTIONS, rng), Openness.OPEN))
    return choices


def decide_government_actions(state: GameState, faction: FactionState, rng: Rng) -> List[ActionChoice]:
    strategy = faction.strategy
    choices = []

    if state.global_safety < SAFETY_THRESHOLDS.global_safety:
        target = pick_regulation_target(state, faction)
        if target is not None:
            choices.append(ActionChoice("regulate", Openness.OPEN, target.id))

    ally = pick_subsidy_target(state, faction)
    if ally is not None and faction.resources.capital >= SUBSIDY.min_capital:
        choices.append(ActionChoice("subsidize", Openness.OPEN, ally.id))
    elif strategy.espionage_focus <= ESPIONAGE_FOCUS_THRESHOLD:
        choices.append(ActionChoice("counterintel", Openness.OPEN))
    else:
        choices.append(ActionChoice("policy", Openness.OPEN))

    if strategy.espionage_focus > ESPIONAGE_FOCUS_THRESHOLD:
        target = pick_regulation_target(state, faction) or _top_rival_lab(state, faction)
        if target is not None:
            choices.append(ActionChoice("espionage", Openness.SECRET, target.id))

    while len(choices) < ACTION_POINTS_PER_TURN:
        choices.append(ActionChoice("policy", Openness.OPEN))
    return choices[:ACTION_POINTS_PER_TURN]


def decide_actions(state: GameState, faction_id: str, rng: Rng) -> List[ActionChoice]:
    """Choose up to ACTION_POINTS_PER_TURN actions for a faction."""
    faction = state.get_faction(faction_id)
    if faction is None:
        logger.warning(f"No faction {faction_id!r}; no actions decided")
        return []
    if faction.type == FactionType.LAB:
        choices = decide_lab_actions(state, faction, rng)
    else:
        choices = decide_government_actions(state, faction, rng)
    logger.debug(f"{faction.name} chose {[(c.action_id, c.openness.value, c.target_faction_id) for c in choices]}")
    return choices[:ACTION_POINTS_PER_TURN]


def score_event_choice(choice: EventChoice, state: GameState, faction_id: str) -> float:
    """Weigh a choice's effects by what the faction's strategy cares about."""
    faction = state.get_faction(faction_id)
    if faction is None:
        return 0.0
    safety_weight = faction.strategy.safety_focus / 50
    risk_weight = faction.strategy.risk_tolerance / 50
    is_government = faction.type == FactionType.GOVERNMENT
    influence_weight = 1.4 if is_government else 0.7
    resource_weights = {
        ResourceKey.TRUST: safety_weight,
        ResourceKey.INFLUENCE: influence_weight,
        ResourceKey.COMPUTE: risk_weight,
        ResourceKey.CAPITAL: 0.4,
        ResourceKey.TALENT: 0.6,
        ResourceKey.DATA: 0.4,
    }

    score = 0.0
    for event_effect in choice.effects:
        effect = event_effect.effect
        if isinstance(effect, ScoreEffect):
            score += effect.delta * (safety_weight if effect.key == ScoreKey.SAFETY else risk_weight)
        elif isinstance(effect, ResourceEffect):
            score += effect.delta * resource_weights[effect.key]
        elif isinstance(effect, StatEffect):
            score += effect.delta * (safety_weight if effect.key == StatKey.SAFETY_CULTURE else 0.4)
        elif isinstance(effect, GlobalSafetyEffect):
            score += effect.delta * (1.5 if is_government else 0.8)
        elif isinstance(effect, ResearchEffect):
            score += effect.delta * 0.5
    return score


def choose_event_choice(event: EventDefinition, state: GameState, faction_id: str) -> str:
    """Id of the highest-scoring choice; the first listed wins ties."""
    best = event.choices[0]
    best_score = score_event_choice(best, state, faction_id)
    for choice in event.choices[1:]:
        choice_score = score_event_choice(choice, state, faction_id)
        if choice_score > best_score:
            best, best_score = choice, choice_score
    return best.id
