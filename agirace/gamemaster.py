"""LLM gamemaster adapter.

The gamemaster reads a snapshot of the game, answers a player's free-text
directive with narration, and may propose a handful of small effects. Proposed
effects are untrusted: they are decoded through `parse_effect`, checked against
the current state, clamped to per-kind limits and only then applied through the
same mutators the engine uses.
"""
import json
import logging
import re
from enum import Enum
from json import JSONDecodeError
from typing import Any, Dict, List, Optional

import attrs
from autogen_agentchat.agents import AssistantAgent
from autogen_agentchat.messages import TextMessage
from autogen_ext.models.openai import OpenAIChatCompletionClient

from agirace.core.effects import (
    Effect,
    EffectValidationError,
    LogEffect,
    ResearchEffect,
    ResourceEffect,
    ScoreEffect,
    StatEffect,
    apply_effect,
    describe_effect,
    effect_to_dict,
    parse_effect,
)
from agirace.core.game_state import GameState
from agirace.utils import get_transcript_logger

logger = logging.getLogger(__name__)
script_logger = get_transcript_logger()

# Largest magnitude a single gamemaster effect may have, per kind
MAX_RESOURCE_DELTA = 15.0
MAX_SCORE_DELTA = 10.0
MAX_STAT_DELTA = 8.0
MAX_RESEARCH_DELTA = 20.0
MAX_EFFECTS_PER_DIRECTIVE = 4

DIRECTIVE_FALLBACK_NARRATIVE = "Directive acknowledged, but no additional effects were applied."

DEFAULT_SYSTEM_MESSAGE = """You are the gamemaster of a strategy game about the race to build AGI.
Factions are AI labs and governments. Each quarter they research, build compute,
deploy products, lobby, spy on each other and regulate.

When a player gives you a directive for their faction, respond with JSON only:
{
  "narrative": "two or three sentences describing what happens",
  "effects": [
    {"kind": "resource", "faction_id": "...", "key": "compute|talent|capital|data|influence|trust", "delta": 3},
    {"kind": "score", "faction_id": "...", "key": "capability_score|safety_score", "delta": 2},
    {"kind": "stat", "faction_id": "...", "key": "safety_culture|opsec", "delta": 2},
    {"kind": "research", "faction_id": "...", "branch": "capabilities|safety|ops|policy", "delta": 5},
    {"kind": "log", "message": "a short public headline"}
  ]
}
Effects are optional and should be small. Directives that are unrealistic get
modest or negative effects. Never reveal hidden numbers in the narrative."""


class ModelFamily(str, Enum):
    """Valid model families for autogen-ext."""
    CHAT = "chat"
    COMPLETION = "completion"
    EMBEDDING = "embedding"


def create_llm_client(
    api_key: str,
    model: str = "gpt-4o-mini",
    api_base: Optional[str] = None,
    family: str = "chat",
    json_output: bool = True,
    timeout: float = 30.0,
) -> OpenAIChatCompletionClient:
    """Create an OpenAI-compatible chat client for the gamemaster."""
    if family not in [f.value for f in ModelFamily]:
        raise ValueError(f"family must be one of {[f.value for f in ModelFamily]}, got {family}")

    client_kwargs = {
        "model": model,
        "api_key": api_key,
        "timeout": timeout,
    }
    if api_base:
        client_kwargs["base_url"] = api_base

    standard_openai_models = ["gpt-4", "gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo", "gpt-4-turbo"]
    needs_model_info = not any(model.startswith(prefix) for prefix in standard_openai_models)
    if needs_model_info or api_base:
        client_kwargs["model_info"] = {
            "family": family,
            "vision": False,
            "function_calling": False,
            "json_output": json_output,
            "structured_output": False,
        }
        logger.debug(f"Using model_info: {client_kwargs['model_info']}")

    return OpenAIChatCompletionClient(**client_kwargs)


@attrs.frozen
class GmEffect:
    """A validated gamemaster effect bound to the faction it applies to."""
    faction_id: Optional[str]
    effect: Effect


@attrs.frozen
class DirectiveResponse:
    narrative: str
    effects: List[GmEffect] = attrs.field(factory=list)


def build_snapshot(state: GameState, faction_id: Optional[str] = None) -> Dict[str, Any]:
    """Read-only JSON view of the game for the model. Other factions' research and exposure stay hidden."""
    factions = {}
    for faction in state.factions.values():
        view = {
            "name": faction.name,
            "type": faction.type.value,
            "capability_score": round(faction.capability_score, 1),
            "safety_score": round(faction.safety_score, 1),
            "trust": round(faction.resources.trust, 1),
            "influence": round(faction.resources.influence, 1),
        }
        if faction.id == faction_id:
            view["resources"] = {k: round(v, 1) for k, v in faction.resources.to_dict().items()}
            view["research"] = {branch.value: round(v, 1) for branch, v in faction.research.items()}
            view["unlocked_techs"] = sorted(faction.unlocked_techs)
            view["can_deploy_agi"] = faction.can_deploy_agi
        factions[faction.id] = view
    return {
        "turn": state.turn,
        "date": state.date_label,
        "global_safety": state.global_safety,
        "acting_faction": faction_id,
        "factions": factions,
        "recent_log": state.log[-8:],
    }


def _clamp_effect(effect: Effect) -> Effect:
    if isinstance(effect, ResourceEffect):
        limit = MAX_RESOURCE_DELTA
    elif isinstance(effect, ScoreEffect):
        limit = MAX_SCORE_DELTA
    elif isinstance(effect, StatEffect):
        limit = MAX_STAT_DELTA
    elif isinstance(effect, ResearchEffect):
        limit = MAX_RESEARCH_DELTA
    else:
        return effect
    clamped = max(-limit, min(limit, effect.delta))
    if clamped != effect.delta:
        logger.info(f"Clamped gamemaster {effect.kind} delta {effect.delta} to {clamped}")
        effect = attrs.evolve(effect, delta=clamped)
    return effect


def validate_gm_effect(raw: Any, state: GameState) -> GmEffect:
    """Decode and bound one raw gamemaster effect. Raises EffectValidationError."""
    effect = parse_effect(raw)
    if isinstance(effect, LogEffect):
        return GmEffect(faction_id=None, effect=effect)
    if not isinstance(effect, (ResourceEffect, ScoreEffect, StatEffect, ResearchEffect)):
        raise EffectValidationError(f"Gamemaster may not issue {effect.kind} effects")

    faction_id = raw.get("faction_id")
    if not isinstance(faction_id, str):
        raise EffectValidationError(f"faction_id must be a string, got {type(faction_id).__name__}")
    if state.get_faction(faction_id) is None:
        raise EffectValidationError(f"Unknown faction {faction_id!r}")
    if effect.delta == 0:
        raise EffectValidationError("Zero delta")
    return GmEffect(faction_id=faction_id, effect=_clamp_effect(effect))


def parse_gm_effects(raw_effects: Any, state: GameState) -> List[GmEffect]:
    """Validate a list of raw effects, dropping (and logging) anything unusable."""
    if not isinstance(raw_effects, list):
        if raw_effects is not None:
            logger.warning(f"Gamemaster effects must be a list, got {type(raw_effects).__name__}")
        return []
    effects = []
    for raw in raw_effects[:MAX_EFFECTS_PER_DIRECTIVE]:
        try:
            effects.append(validate_gm_effect(raw, state))
        except EffectValidationError as e:
            logger.warning(f"Dropping gamemaster effect {raw!r}: {e}")
    if len(raw_effects) > MAX_EFFECTS_PER_DIRECTIVE:
        logger.warning(f"Gamemaster proposed {len(raw_effects)} effects; kept the first {MAX_EFFECTS_PER_DIRECTIVE}")
    return effects


def apply_gm_effects(state: GameState, effects: List[GmEffect]):
    """Apply validated effects through the shared effect dispatcher."""
    for gm_effect in effects:
        if isinstance(gm_effect.effect, LogEffect):
            apply_effect(state, None, gm_effect.effect)
            continue
        faction = state.get_faction(gm_effect.faction_id)
        if faction is None:
            # the roster changed since validation
            logger.warning(f"Skipping gamemaster effect for missing faction {gm_effect.faction_id!r}")
            continue
        apply_effect(state, faction, gm_effect.effect)
        logger.info(f"Gamemaster effect on {faction.id}: {describe_effect(gm_effect.effect)}")


def extract_json_from_response(response_text: str) -> Any:
    """Parse a model reply as JSON, tolerating code fences or prose around the object."""
    try:
        return json.loads(response_text)
    except JSONDecodeError:
        json_match = re.search(r'\{.*\}', response_text, re.DOTALL)
        if not json_match:
            return None
        try:
            return json.loads(json_match.group())
        except JSONDecodeError:
            logger.error(f"Could not parse extracted JSON: {json_match.group()}")
            return None


def parse_directive_response(response_text: str, state: GameState) -> DirectiveResponse:
    data = extract_json_from_response(response_text)
    if not isinstance(data, dict):
        narrative = response_text.strip() or DIRECTIVE_FALLBACK_NARRATIVE
        return DirectiveResponse(narrative=narrative)
    narrative = data.get("narrative")
    if not isinstance(narrative, str) or not narrative.strip():
        narrative = DIRECTIVE_FALLBACK_NARRATIVE
    return DirectiveResponse(narrative=narrative.strip(), effects=parse_gm_effects(data.get("effects"), state))


class Gamemaster:
    """Narrates directives through an autogen assistant and proposes bounded effects."""

    def __init__(self, llm_client, system_message: str = DEFAULT_SYSTEM_MESSAGE, name: str = "gamemaster"):
        self.llm_client = llm_client
        self.system_message = system_message
        self.name = name

        logging.getLogger("autogen_agentchat").setLevel(logging.ERROR)
        self.agent = AssistantAgent(
            name=self.name,
            model_client=llm_client,
            system_message=self.system_message,
        )
        self.history: List[Dict[str, Any]] = []

    def _build_prompt(self, state: GameState, faction_id: str, directive: str) -> str:
        snapshot = json.dumps(build_snapshot(state, faction_id), indent=2)
        return f"""## Current situation

{snapshot}

## Directive from {state.factions[faction_id].name} ({faction_id})

{directive}

Respond with JSON only."""

    async def _get_llm_response(self, prompt: str) -> str:
        try:
            response = await self.agent.run(task=TextMessage(source="user", content=prompt))
            response_content = response.messages[-1].content if response.messages else ""
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"{self.name} - Full response:\n{response_content}")
            return response_content
        except Exception:
            logger.exception(f"{self.name} - LLM call failed")
            return ""

    async def respond_to_directive(self, state: GameState, faction_id: str, directive: str) -> DirectiveResponse:
        """Ask the model to resolve a directive. Effects are validated but not applied."""
        if state.get_faction(faction_id) is None:
            raise ValueError(f"Unknown faction {faction_id!r}")
        if not directive.strip():
            return DirectiveResponse(narrative=DIRECTIVE_FALLBACK_NARRATIVE)

        response_text = await self._get_llm_response(self._build_prompt(state, faction_id, directive))
        if not response_text:
            result = DirectiveResponse(narrative=DIRECTIVE_FALLBACK_NARRATIVE)
        else:
            result = parse_directive_response(response_text, state)

        record = {
            "turn": state.turn,
            "log_type": "gamemaster_directive",
            "faction_id": faction_id,
            "directive": directive,
            "narrative": result.narrative,
            "effects": [dict(effect_to_dict(e.effect), faction_id=e.faction_id) for e in result.effects],
        }
        self.history.append(record)
        script_logger.info(record)
        return result
