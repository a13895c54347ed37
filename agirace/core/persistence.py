"""Game state <-> JSON wire format.

The wire format is a plain dict tagged with `version`. Sets become sorted
lists, enums become their string values, and only the most recent
MAX_LOG_ENTRIES log lines are kept.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from agirace.core.constants import MAX_LOG_ENTRIES, SAVE_VERSION
from agirace.core.enums import Branch, FactionType, Outcome, ResourceKey
from agirace.core.game_state import FactionState, GameState, Resources, StrategyProfile

logger = logging.getLogger(__name__)


def serialize_faction(faction: FactionState) -> Dict[str, Any]:
    return {
        "id": faction.id,
        "name": faction.name,
        "type": faction.type.value,
        "resources": faction.resources.to_dict(),
        "safety_culture": faction.safety_culture,
        "opsec": faction.opsec,
        "capability_score": faction.capability_score,
        "safety_score": faction.safety_score,
        "research": {branch.value: value for branch, value in faction.research.items()},
        "unlocked_techs": sorted(faction.unlocked_techs),
        "exposure": faction.exposure,
        "can_deploy_agi": faction.can_deploy_agi,
        "strategy": {
            "risk_tolerance": faction.strategy.risk_tolerance,
            "safety_focus": faction.strategy.safety_focus,
            "openness_preference": faction.strategy.openness_preference,
            "espionage_focus": faction.strategy.espionage_focus,
        },
    }


def serialize_state(state: GameState) -> Dict[str, Any]:
    """Convert a GameState into a JSON-safe dict."""
    return {
        "version": SAVE_VERSION,
        "turn": state.turn,
        "year": state.year,
        "quarter": state.quarter,
        "global_safety": state.global_safety,
        "global_safety_drift": state.global_safety_drift,
        "game_over": state.game_over,
        "winner_id": state.winner_id,
        "loser_id": state.loser_id,
        "outcome": state.outcome.value if state.outcome else None,
        "factions": {faction_id: serialize_faction(f) for faction_id, f in state.factions.items()},
        "log": state.log[-MAX_LOG_ENTRIES:],
    }


def deserialize_faction(data: Dict[str, Any]) -> FactionState:
    defaults = FactionState(id="", name="", type=FactionType.LAB, resources=Resources())
    raw_resources = data.get("resources") or {}
    resources = Resources(**{
        key.value: float(raw_resources.get(key.value, 0.0)) for key in ResourceKey
    })
    research = defaults.research
    for branch_name, value in (data.get("research") or {}).items():
        try:
            research[Branch(branch_name)] = float(value)
        except ValueError:
            logger.warning(f"Ignoring research for unknown branch {branch_name!r}")
    raw_strategy = data.get("strategy") or {}
    strategy = StrategyProfile(**{
        name: float(raw_strategy[name])
        for name in ("risk_tolerance", "safety_focus", "openness_preference", "espionage_focus")
        if name in raw_strategy
    })
    return FactionState(
        id=data["id"],
        name=data.get("name", data["id"]),
        type=FactionType(data.get("type", FactionType.LAB.value)),
        resources=resources,
        safety_culture=float(data.get("safety_culture", defaults.safety_culture)),
        opsec=float(data.get("opsec", defaults.opsec)),
        capability_score=float(data.get("capability_score", defaults.capability_score)),
        safety_score=float(data.get("safety_score", defaults.safety_score)),
        research=research,
        unlocked_techs=set(data.get("unlocked_techs") or ()),
        exposure=float(data.get("exposure", 0.0)),
        can_deploy_agi=bool(data.get("can_deploy_agi", False)),
        strategy=strategy,
    )


def deserialize_state(data: Dict[str, Any]) -> GameState:
    """Restore a GameState. A different save version logs a warning and is restored best-effort."""
    version = data.get("version")
    if version != SAVE_VERSION:
        logger.warning(f"Save version mismatch: expected {SAVE_VERSION}, got {version}. Restoring best-effort.")

    defaults = GameState()
    factions = {}
    for faction_id, raw_faction in (data.get("factions") or {}).items():
        raw_faction = dict(raw_faction)
        raw_faction.setdefault("id", faction_id)
        factions[faction_id] = deserialize_faction(raw_faction)

    outcome = data.get("outcome")
    if outcome is not None:
        try:
            outcome = Outcome(outcome)
        except ValueError:
            logger.warning(f"Ignoring unknown outcome {outcome!r}")
            outcome = None

    return GameState(
        factions=factions,
        turn=int(data.get("turn", defaults.turn)),
        year=int(data.get("year", defaults.year)),
        quarter=int(data.get("quarter", defaults.quarter)),
        global_safety=float(data.get("global_safety", defaults.global_safety)),
        global_safety_drift=float(data.get("global_safety_drift", 0.0)),
        game_over=bool(data.get("game_over", False)),
        winner_id=data.get("winner_id"),
        loser_id=data.get("loser_id"),
        outcome=outcome,
        log=list(data.get("log") or []),
    )


def dumps(state: GameState, **kwargs) -> str:
    return json.dumps(serialize_state(state), **kwargs)


def loads(text: str) -> GameState:
    return deserialize_state(json.loads(text))


def save_game(state: GameState, path: Union[str, Path]):
    Path(path).write_text(dumps(state, indent=2))
    logger.info(f"Saved game at turn {state.turn} to {path}")


def load_game(path: Union[str, Path]) -> GameState:
    state = loads(Path(path).read_text())
    logger.info(f"Loaded game at turn {state.turn} from {path}")
    return state
