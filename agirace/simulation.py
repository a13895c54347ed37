"""Run a full AI-vs-AI game with the heuristic decider."""
import asyncio
import logging
from typing import Callable, List, Optional, Sequence

import attrs

from agirace.ai.heuristic import choose_event_choice, decide_actions
from agirace.core.constants import MAX_TURN
from agirace.core.engine import TurnEngine
from agirace.core.game_state import GameState, create_initial_state
from agirace.data.events import EVENTS
from agirace.events import EventDefinition, resolve_event_choice, select_event
from agirace.gamemaster import DirectiveResponse, Gamemaster, apply_gm_effects
from agirace.history import TurnHistory
from agirace.utils import get_transcript_logger, seeded_rng

logger = logging.getLogger(__name__)
script_logger = get_transcript_logger()


@attrs.frozen
class Directive:
    """A free-text order a faction gives the gamemaster at the end of a given turn."""
    turn: int
    faction_id: str
    text: str


def parse_directive(value: str) -> Directive:
    """Parse "TURN:FACTION_ID:TEXT", e.g. "3:us_lab_a:Publish our eval suite"."""
    parts = value.split(":", 2)
    if len(parts) != 3 or not parts[0].strip().isdigit() or not parts[1].strip() or not parts[2].strip():
        raise ValueError(f"Directive must look like TURN:FACTION_ID:TEXT, got {value!r}")
    return Directive(turn=int(parts[0]), faction_id=parts[1].strip(), text=parts[2].strip())


def run_event_phase(state: GameState, events: Sequence[EventDefinition], rng: Callable[[], float],
                    event_history: List[str]) -> Optional[str]:
    """Maybe fire one event at a randomly drawn faction, which answers it heuristically."""
    event = select_event(events, state, rng, event_history)
    if event is None:
        return None
    faction_ids = list(state.factions)
    faction_id = faction_ids[min(int(rng() * len(faction_ids)), len(faction_ids) - 1)]
    choice_id = choose_event_choice(event, state, faction_id)
    resolve_event_choice(state, event, choice_id, faction_id)
    event_history.append(event.id)
    script_logger.info({"turn": state.turn, "log_type": "event", "event_id": event.id,
                        "faction_id": faction_id, "choice_id": choice_id})
    return event.id


async def run_directive_phase(state: GameState, gamemaster: Gamemaster,
                              directives: Sequence[Directive]) -> List[DirectiveResponse]:
    """Send this turn's directives to the gamemaster and apply the effects it proposes."""
    responses = []
    for directive in directives:
        if directive.turn != state.turn:
            continue
        if state.get_faction(directive.faction_id) is None:
            logger.warning(f"Skipping directive for unknown faction {directive.faction_id!r}")
            continue
        response = await gamemaster.respond_to_directive(state, directive.faction_id, directive.text)
        state.log.append(response.narrative)
        apply_gm_effects(state, response.effects)
        responses.append(response)
    return responses


def simulate_one_game(
    turns: int = MAX_TURN,
    seed: Optional[int] = 42,
    state: Optional[GameState] = None,
    events_enabled: bool = True,
    events: Sequence[EventDefinition] = EVENTS,
    engine: Optional[TurnEngine] = None,
    history: Optional[TurnHistory] = None,
    on_turn: Optional[Callable[[GameState], None]] = None,
    gamemaster: Optional[Gamemaster] = None,
    directives: Sequence[Directive] = (),
) -> GameState:
    """Play up to `turns` turns (or until the game ends) and return the final state.

    A single seeded RNG drives the deciders, the engine and the events, so the
    same seed always replays the same game. Directives are only sent when a
    gamemaster is given.
    """
    rng = seeded_rng(seed)
    state = state if state is not None else create_initial_state()
    engine = engine or TurnEngine()
    event_history: List[str] = []
    # one loop for the whole game so the LLM client's connections stay usable
    loop = asyncio.new_event_loop() if gamemaster is not None and directives else None

    logger.info(f"Starting simulation: {turns} turns, seed {seed}, events {'on' if events_enabled else 'off'}")
    try:
        for _ in range(turns):
            if state.game_over:
                break
            choices = {faction_id: decide_actions(state, faction_id, rng) for faction_id in state.factions}
            engine.resolve_turn(state, choices, rng)

            if events_enabled and not state.game_over:
                run_event_phase(state, events, rng, event_history)

            if loop is not None and not state.game_over:
                loop.run_until_complete(run_directive_phase(state, gamemaster, directives))

            if history is not None:
                history.record(state)
            if on_turn is not None:
                on_turn(state)
    finally:
        if loop is not None:
            loop.close()

    logger.info(f"Simulation finished at turn {state.turn}: "
                f"{state.outcome.value if state.outcome else 'no outcome yet'}")
    return state
