"""Turn resolution.

One call to `resolve_turn` advances the game by one quarter:

    calendar -> income -> actions -> detection -> tech unlock
    -> global safety recompute -> AGI deployment -> end-state evaluation

The engine is synchronous and makes no I/O. Randomness comes only from the
injected `rng` function, drawn in a fixed order (one draw per targeted
espionage action, in action order; then one draw per exposed faction, in
faction order), so the same state, choices and RNG sequence always produce
the same result.
"""
import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import attrs

from agirace.core.actions import ACTION_MAP, ActionDefinition, ActionKind, get_action
from agirace.core.constants import (
    ACTION_POINTS_PER_TURN,
    COUNTERINTEL_OPSEC_GAIN,
    DETECTION,
    ESPIONAGE,
    INCOME,
    OPENNESS_MULTIPLIERS,
    REGULATION,
    SAFETY_THRESHOLDS,
    SUBSIDY,
    DetectionParams,
    EspionageParams,
    IncomeParams,
)
from agirace.core.enums import Branch, Openness, Outcome, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import ActionChoice, FactionState, GameState
from agirace.core.stats import (
    apply_exposure_delta,
    apply_global_safety_delta,
    apply_research_delta,
    apply_resource_delta,
    apply_score_delta,
    apply_stat_delta,
    compute_research_gain,
    recompute_global_safety,
)
from agirace.core.targeting import pick_regulation_target, pick_subsidy_target
from agirace.core.tech import TechNode, unlock_available_techs
from agirace.core.utils import clamp
from agirace.core.victory_conditions import EndStateResult, check_government_victory, evaluate_end_state
from agirace.data.tech_tree import TECH_TREE
from agirace.utils import get_transcript_logger

logger = logging.getLogger(__name__)
script_logger = get_transcript_logger()

Rng = Callable[[], float]

__all__ = ["TurnEngine", "resolve_turn", "check_government_victory"]


@attrs.define
class TurnEngine:
    """Resolves turns against a fixed set of content tables and tunables."""
    tech_tree: Sequence[TechNode] = TECH_TREE
    actions: Mapping[str, ActionDefinition] = ACTION_MAP
    detection: DetectionParams = DETECTION
    espionage: EspionageParams = ESPIONAGE
    income: IncomeParams = INCOME
    action_points: int = ACTION_POINTS_PER_TURN

    def resolve_turn(self, state: GameState, choices: Mapping[str, Sequence[ActionChoice]], rng: Rng) -> GameState:
        """Resolve one turn in place. A finished game is returned untouched."""
        if state.game_over:
            logger.info("Game is over; ignoring turn resolution request")
            return state

        log_start = len(state.log)
        deploy_attempts: List[str] = []

        state.advance_calendar()
        state.log.append(f"--- {state.date_label} ---")
        logger.info(f"Resolving turn {state.turn} ({state.date_label})")

        for faction in state.factions.values():
            self._apply_income(faction)

        for faction in state.factions.values():
            faction_choices = list(choices.get(faction.id, ()))
            if len(faction_choices) > self.action_points:
                logger.debug(f"{faction.name} submitted {len(faction_choices)} actions; "
                             f"only the first {self.action_points} count")
            for choice in faction_choices[:self.action_points]:
                self._resolve_action(state, faction, choice, rng, deploy_attempts)

        for faction_id in choices:
            if faction_id not in state.factions:
                logger.warning(f"Ignoring actions for unknown faction {faction_id!r}")
                state.log.append(f"Ignored actions for unknown faction {faction_id}.")

        for faction in state.factions.values():
            self._resolve_detection(state, faction, rng)

        for faction in state.factions.values():
            for tech_id in unlock_available_techs(state, faction, self.tech_tree):
                state.log.append(f"{faction.name} unlocked {tech_id}.")

        recompute_global_safety(state)

        if deploy_attempts:
            self._resolve_deployment(state, state.factions[deploy_attempts[0]])

        if not state.game_over:
            result = evaluate_end_state(state)
            if result.is_terminal:
                self._apply_end_state(state, result)

        self._log_turn_summary(state, state.log[log_start:])
        return state

    def _apply_income(self, faction: FactionState):
        resources = faction.resources
        if faction.is_lab:
            income = (self.income.lab_base
                      + resources.trust * self.income.lab_trust_factor
                      + resources.influence * self.income.lab_influence_factor)
        else:
            income = (self.income.government_base
                      + resources.influence * self.income.government_influence_factor
                      + resources.trust * self.income.government_trust_factor)
        apply_resource_delta(faction, {ResourceKey.CAPITAL: max(0.0, income)})

    def _resolve_action(self, state: GameState, faction: FactionState, choice: ActionChoice, rng: Rng,
                        deploy_attempts: List[str]):
        try:
            action = get_action(choice.action_id, self.actions)
        except KeyError:
            state.log.append(f"{faction.name} attempted invalid action {choice.action_id}.")
            logger.warning(f"{faction.name}: unknown action {choice.action_id!r}")
            return

        if not action.is_allowed(faction.type):
            state.log.append(f"{faction.name} attempted invalid action {action.name}.")
            logger.debug(f"{faction.name}: {action.id} is not available to {faction.type.value} factions")
            return

        try:
            openness = Openness(choice.openness)
        except ValueError:
            state.log.append(f"{faction.name} attempted invalid action {action.name} (openness {choice.openness!r}).")
            return

        if action.kind == ActionKind.ESPIONAGE:
            openness = Openness.SECRET

        if action.kind == ActionKind.SUBSIDIZE and faction.resources.capital < SUBSIDY.min_capital:
            fallback = self.actions.get(ActionKind.POLICY.value)
            if fallback is None:
                state.log.append(f"{faction.name} lacks the capital to subsidize anyone.")
                return
            state.log.append(f"{faction.name} lacks the capital to subsidize and pursues policy instead.")
            action = fallback

        target = None
        if action.requires_target:
            target = self._resolve_target(state, faction, action, choice.target_faction_id)
            if target is None:
                return

        self._apply_common_effects(state, faction, action, openness)

        if action.kind == ActionKind.DEPLOY_AGI:
            if not faction.can_deploy_agi:
                state.log.append(f"{faction.name} attempted AGI deployment without the breakthrough.")
                return
            deploy_attempts.append(faction.id)
        elif action.kind == ActionKind.ESPIONAGE:
            self._resolve_espionage(state, faction, target, rng)
        elif action.kind == ActionKind.SUBSIDIZE:
            apply_resource_delta(target, {ResourceKey.CAPITAL: SUBSIDY.amount})
            state.log.append(f"{faction.name} subsidized {target.name}.")
        elif action.kind == ActionKind.REGULATE:
            apply_resource_delta(target, {
                ResourceKey.COMPUTE: -REGULATION.compute_penalty,
                ResourceKey.INFLUENCE: -REGULATION.influence_penalty,
            })
            apply_score_delta(target, ScoreKey.CAPABILITY, -REGULATION.capability_penalty)
            state.log.append(f"{faction.name} imposed regulations on {target.name}.")
        elif action.kind == ActionKind.COUNTERINTEL:
            apply_stat_delta(faction, StatKey.OPSEC, COUNTERINTEL_OPSEC_GAIN)
            state.log.append(f"{faction.name} tightened counterintelligence.")

    def _resolve_target(self, state: GameState, faction: FactionState, action: ActionDefinition,
                        target_id: Optional[str]) -> Optional[FactionState]:
        """Find the target for a targeted action, or log why there is none."""
        if target_id is not None:
            target = state.get_faction(target_id)
            if target is None or target.id == faction.id:
                state.log.append(f"{faction.name} attempted {action.name} with an invalid target ({target_id}).")
                return None
            if action.kind != ActionKind.ESPIONAGE and not target.is_lab:
                state.log.append(f"{faction.name} attempted {action.name} on {target.name}, which is not a lab.")
                return None
            return target

        if action.kind == ActionKind.SUBSIDIZE:
            target = pick_subsidy_target(state, faction)
        elif action.kind == ActionKind.REGULATE:
            target = pick_regulation_target(state, faction)
        else:
            target = None
        if target is None:
            state.log.append(f"{faction.name} found no eligible target for {action.name}.")
        return target

    def _apply_common_effects(self, state: GameState, faction: FactionState, action: ActionDefinition,
                              openness: Openness):
        """Resource costs, openness side effects, research and exposure."""
        apply_resource_delta(faction, action.base_resource_delta)

        modifier = OPENNESS_MULTIPLIERS[openness]
        apply_resource_delta(faction, {ResourceKey.TRUST: modifier.trust_delta})
        if modifier.safety_delta:
            apply_score_delta(faction, ScoreKey.SAFETY, modifier.safety_delta)
        if modifier.capability_delta:
            apply_score_delta(faction, ScoreKey.CAPABILITY, modifier.capability_delta)
        if modifier.global_safety_delta:
            apply_global_safety_delta(state, modifier.global_safety_delta)

        for branch, base in action.base_research.items():
            gain = compute_research_gain(faction, branch, base) * modifier.research
            apply_research_delta(faction, branch, gain)

        if openness == Openness.SECRET:
            apply_exposure_delta(faction, action.exposure)

    def _resolve_espionage(self, state: GameState, attacker: FactionState, target: FactionState, rng: Rng):
        params = self.espionage
        success_chance = clamp(
            params.base_success + attacker.opsec * params.opsec_attack_factor - target.opsec * params.opsec_defense_factor,
            params.min_success,
            params.max_success,
        )
        draw = rng()
        logger.debug(f"Espionage {attacker.id} -> {target.id}: draw {draw:.3f} vs chance {success_chance:.3f}")
        if draw < success_chance:
            # Copying, not destruction: the target keeps its research
            stolen = min(params.max_steal, target.research[Branch.CAPABILITIES])
            apply_research_delta(attacker, Branch.CAPABILITIES, stolen)
            state.log.append(f"{attacker.name} stole {stolen:.1f} capabilities research from {target.name}.")
        else:
            apply_exposure_delta(attacker, params.failure_exposure)
            state.log.append(f"{attacker.name} failed an espionage attempt against {target.name}.")

    def _resolve_detection(self, state: GameState, faction: FactionState, rng: Rng):
        if faction.exposure <= 0:
            return
        params = self.detection
        chance = clamp(
            params.base_chance + faction.exposure * params.per_exposure - faction.opsec * params.opsec_factor,
            0.0,
            params.max_chance,
        )
        draw = rng()
        logger.debug(f"Detection check {faction.id}: exposure {faction.exposure:.1f}, "
                     f"draw {draw:.3f} vs chance {chance:.3f}")
        if draw < chance:
            apply_resource_delta(faction, {
                ResourceKey.TRUST: -params.trust_penalty,
                ResourceKey.INFLUENCE: -params.influence_penalty,
            })
            apply_score_delta(faction, ScoreKey.SAFETY, -params.safety_penalty)
            faction.exposure = 0.0
            state.log.append(f"{faction.name} was exposed for secret activity.")

    def _resolve_deployment(self, state: GameState, faction: FactionState):
        """Only the first deployment of a turn counts; either outcome ends the game."""
        safe = (faction.safety_score >= SAFETY_THRESHOLDS.faction
                and state.global_safety >= SAFETY_THRESHOLDS.global_safety)
        state.game_over = True
        if safe:
            state.outcome = Outcome.SAFE_AGI
            state.winner_id = faction.id
            state.log.append(f"{faction.name} deployed safe AGI and wins the race.")
        else:
            state.outcome = Outcome.CATASTROPHE
            state.winner_id = None
            state.loser_id = faction.id
            state.log.append(f"{faction.name} deployed unsafe AGI. Global catastrophe.")
        logger.info(f"Game over: {state.outcome.value} (deployed by {faction.id})")

    def _apply_end_state(self, state: GameState, result: EndStateResult):
        state.game_over = True
        state.outcome = result.outcome
        state.winner_id = result.winner_id
        state.loser_id = result.loser_id
        state.log.append(result.message)
        logger.info(f"Game over: {result.outcome.value} ({result.message})")

    def _log_turn_summary(self, state: GameState, new_entries: List[str]):
        script_logger.info({
            "turn": state.turn,
            "log_type": "turn_summary",
            "date": state.date_label,
            "global_safety": state.global_safety,
            "game_over": state.game_over,
            "outcome": state.outcome.value if state.outcome else None,
            "winner_id": state.winner_id,
            "loser_id": state.loser_id,
            "log": new_entries,
            "factions": {faction_id: _faction_summary(faction) for faction_id, faction in state.factions.items()},
        })


def _faction_summary(faction: FactionState) -> Dict:
    return {
        "resources": faction.resources.to_dict(),
        "capability_score": faction.capability_score,
        "safety_score": faction.safety_score,
        "exposure": faction.exposure,
        "unlocked_techs": sorted(faction.unlocked_techs),
    }


DEFAULT_ENGINE = TurnEngine()


def resolve_turn(
    state: GameState,
    choices: Mapping[str, Sequence[ActionChoice]],
    rng: Rng,
    tech_tree: Optional[Sequence[TechNode]] = None,
    actions: Optional[Mapping[str, ActionDefinition]] = None,
) -> GameState:
    """Resolve one turn with the default tech tree and action table unless others are given."""
    overrides = {}
    if tech_tree is not None:
        overrides["tech_tree"] = tech_tree
    if actions is not None:
        overrides["actions"] = actions
    engine = attrs.evolve(DEFAULT_ENGINE, **overrides) if overrides else DEFAULT_ENGINE
    return engine.resolve_turn(state, choices, rng)
