"""Pure classification of terminal game conditions.

Nothing in this module mutates state. The engine calls `evaluate_end_state`
after each turn and applies the result.
"""
import logging
from typing import Dict, List, Optional

import attrs

from agirace.core.constants import (
    GOVERNMENT_VICTORY,
    MAX_TURN,
    MIN_VICTORY_TURN,
    SAFETY_THRESHOLDS,
    VICTORY_THRESHOLDS,
)
from agirace.core.enums import Outcome
from agirace.core.game_state import FactionState, GameState

logger = logging.getLogger(__name__)


@attrs.frozen
class GovernmentVictoryResult:
    victory: bool
    winner_id: Optional[str] = None


@attrs.frozen
class EndStateResult:
    """The single classification for a state. `outcome` is None while the game continues."""
    outcome: Optional[Outcome] = None
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None


CONTINUE = EndStateResult()


def check_government_victory(state: GameState) -> GovernmentVictoryResult:
    """Regulatory win test: every lab is safe and the world is safe.

    The winner is the government with the highest influence (earliest faction on ties).
    """
    governments = state.governments()
    if not governments:
        return GovernmentVictoryResult(victory=False)
    labs_safe = all(lab.safety_score >= GOVERNMENT_VICTORY.all_labs_safe_threshold for lab in state.labs())
    world_safe = state.global_safety >= GOVERNMENT_VICTORY.global_safety_threshold
    if not (labs_safe and world_safe):
        return GovernmentVictoryResult(victory=False)

    winner = governments[0]
    for government in governments[1:]:
        if government.resources.influence > winner.resources.influence:
            winner = government
    return GovernmentVictoryResult(victory=True, winner_id=winner.id)


def _best_other_lab_capability(state: GameState, faction: FactionState) -> float:
    return max((lab.capability_score for lab in state.labs() if lab.id != faction.id), default=0.0)


def _check_dominant(state: GameState) -> Optional[EndStateResult]:
    thresholds = VICTORY_THRESHOLDS
    for lab in state.labs():
        if lab.capability_score < thresholds.dominant_capability:
            continue
        runner_up = _best_other_lab_capability(state, lab)
        if runner_up <= 0:
            return EndStateResult(Outcome.DOMINANT, winner_id=lab.id,
                                  message=f"{lab.name} achieved total technological dominance.")
        if lab.capability_score >= runner_up * thresholds.dominant_lead_ratio:
            lead = (lab.capability_score - runner_up) / runner_up * 100
            return EndStateResult(Outcome.DOMINANT, winner_id=lab.id,
                                  message=f"{lab.name} achieved technological dominance with a {lead:.0f}% lead.")
    return None


def _check_public_trust(state: GameState) -> Optional[EndStateResult]:
    for lab in state.labs():
        if (lab.resources.trust >= VICTORY_THRESHOLDS.public_trust
                and lab.capability_score >= VICTORY_THRESHOLDS.public_trust_capability):
            return EndStateResult(Outcome.PUBLIC_TRUST, winner_id=lab.id,
                                  message=f"{lab.name} won through public trust and successful deployment.")
    return None


def _check_alliance_or_control(state: GameState) -> Optional[EndStateResult]:
    thresholds = VICTORY_THRESHOLDS
    labs = state.labs()
    for government in state.governments():
        influence = government.resources.influence
        if influence >= thresholds.alliance_influence:
            partners = [
                f for f in state.factions.values()
                if f.id != government.id and f.resources.trust >= thresholds.alliance_trust
            ]
            if len(partners) >= thresholds.alliance_min_partners:
                return EndStateResult(
                    Outcome.ALLIANCE, winner_id=government.id,
                    message=f"{government.name} formed a global AI safety treaty with {len(partners)} factions.",
                )
        if influence >= thresholds.control_influence and labs and all(
            lab.capability_score <= thresholds.control_max_lab_capability for lab in labs
        ):
            return EndStateResult(Outcome.CONTROL, winner_id=government.id,
                                  message=f"{government.name} achieved total control over AI development.")
    return None


def _check_losses(state: GameState) -> Optional[EndStateResult]:
    thresholds = VICTORY_THRESHOLDS
    labs = state.labs()
    for lab in labs:
        leader = _best_other_lab_capability(state, lab)
        gap = leader - lab.capability_score
        if len(labs) > 1 and gap >= thresholds.obsolescence_gap:
            return EndStateResult(Outcome.OBSOLESCENCE, loser_id=lab.id,
                                  message=f"{lab.name} became obsolete, falling {gap:.0f} points behind.")
    for faction in state.factions.values():
        if faction.resources.trust < thresholds.collapse_trust:
            return EndStateResult(Outcome.COLLAPSE, loser_id=faction.id,
                                  message=f"{faction.name} collapsed after losing public trust.")
    dangerous_labs = [lab for lab in labs if lab.capability_score >= thresholds.coup_lab_capability]
    if dangerous_labs:
        for government in state.governments():
            if government.resources.influence < thresholds.coup_influence:
                return EndStateResult(Outcome.COUP, loser_id=government.id,
                                      message=f"{government.name} lost control as AI labs became too powerful.")
    return None


def evaluate_end_state(state: GameState) -> EndStateResult:
    """Classify `state`, checking conditions in fixed priority order.

    1. safe_agi / catastrophe (already terminal, echoed back)
    2. dominant, 3. public_trust, 4. alliance / control (from MIN_VICTORY_TURN)
    5. regulatory (at MAX_TURN)
    6. obsolescence / collapse / coup
    7. stalemate (at MAX_TURN)
    """
    if state.outcome in (Outcome.SAFE_AGI, Outcome.CATASTROPHE):
        return EndStateResult(state.outcome, winner_id=state.winner_id, loser_id=state.loser_id)

    if state.turn >= MIN_VICTORY_TURN:
        for check in (_check_dominant, _check_public_trust, _check_alliance_or_control):
            result = check(state)
            if result is not None:
                return result

    if state.turn >= MAX_TURN:
        government_result = check_government_victory(state)
        if government_result.victory:
            winner = state.factions[government_result.winner_id]
            return EndStateResult(
                Outcome.REGULATORY, winner_id=winner.id,
                message=f"{winner.name} achieved regulatory victory. All labs kept safe practices through {state.year}.",
            )

    loss = _check_losses(state)
    if loss is not None:
        return loss

    if state.turn >= MAX_TURN:
        return EndStateResult(Outcome.STALEMATE,
                              message=f"The race ends in a stalemate in {state.date_label}. No faction prevailed.")
    return CONTINUE


def _ratio(value: float, target: float) -> float:
    if target <= 0:
        return 1.0
    return max(0.0, min(1.0, value / target))


def victory_progress(state: GameState, faction_id: str) -> Dict[Outcome, float]:
    """Progress (0..1) toward each victory route open to the faction."""
    faction = state.get_faction(faction_id)
    if faction is None:
        return {}
    thresholds = VICTORY_THRESHOLDS
    progress = {}
    if faction.is_lab:
        progress[Outcome.SAFE_AGI] = (
            _ratio(faction.safety_score, SAFETY_THRESHOLDS.faction)
            + _ratio(state.global_safety, SAFETY_THRESHOLDS.global_safety)
            + (1.0 if faction.can_deploy_agi else 0.0)
        ) / 3
        runner_up = _best_other_lab_capability(state, faction)
        lead_ratio = faction.capability_score / runner_up if runner_up > 0 else thresholds.dominant_lead_ratio
        progress[Outcome.DOMINANT] = min(
            _ratio(faction.capability_score, thresholds.dominant_capability),
            _ratio(lead_ratio, thresholds.dominant_lead_ratio),
        )
        progress[Outcome.PUBLIC_TRUST] = (
            _ratio(faction.resources.trust, thresholds.public_trust)
            + _ratio(faction.capability_score, thresholds.public_trust_capability)
        ) / 2
    else:
        others = [f for f in state.factions.values() if f.id != faction.id]
        trusted = sum(1 for f in others if f.resources.trust >= thresholds.alliance_trust)
        progress[Outcome.ALLIANCE] = (
            _ratio(faction.resources.influence, thresholds.alliance_influence)
            + _ratio(trusted, thresholds.alliance_min_partners)
        ) / 2
        labs = state.labs()
        top_lab = max((lab.capability_score for lab in labs), default=0.0)
        progress[Outcome.CONTROL] = (
            _ratio(faction.resources.influence, thresholds.control_influence)
            + (1.0 if top_lab <= thresholds.control_max_lab_capability
               else _ratio(thresholds.control_max_lab_capability, top_lab))
        ) / 2
        unsafe_labs = [lab for lab in labs if lab.safety_score < GOVERNMENT_VICTORY.all_labs_safe_threshold]
        progress[Outcome.REGULATORY] = (
            _ratio(len(labs) - len(unsafe_labs), len(labs))
            + _ratio(state.global_safety, GOVERNMENT_VICTORY.global_safety_threshold)
            + _ratio(state.turn, MAX_TURN)
        ) / 3
    return progress


def leading_routes(state: GameState, faction_id: str, limit: int = 2) -> List[Outcome]:
    """The faction's most advanced victory routes, best first."""
    progress = victory_progress(state, faction_id)
    return [outcome for outcome, _ in sorted(progress.items(), key=lambda item: -item[1])[:limit]]
