"""AGI race: a turn-based strategy simulation of labs and governments racing toward AGI."""
from agirace.core.engine import TurnEngine, check_government_victory, resolve_turn
from agirace.core.game_state import ActionChoice, FactionState, GameState, Openness, create_initial_state
from agirace.core.persistence import deserialize_state, serialize_state

__all__ = [
    "ActionChoice",
    "FactionState",
    "GameState",
    "Openness",
    "TurnEngine",
    "check_government_victory",
    "create_initial_state",
    "deserialize_state",
    "resolve_turn",
    "serialize_state",
]
