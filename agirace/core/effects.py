"""Tagged union of effects that can change game state.

Tech nodes, event choices and gamemaster directives all describe their
consequences as `Effect` values. `apply_effect` is the single dispatcher that
turns an effect into mutator calls, and `parse_effect` is the strict boundary
that decodes untrusted JSON into the union.
"""
import logging
import math
from enum import Enum
from typing import Any, Dict, Union

import attrs

from agirace.core.enums import Branch, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import FactionState, GameState
from agirace.core.stats import (
    apply_exposure_delta,
    apply_global_safety_delta,
    apply_research_delta,
    apply_resource_delta,
    apply_score_delta,
    apply_stat_delta,
)

logger = logging.getLogger(__name__)


class EffectValidationError(ValueError):
    """Raised when raw effect data cannot be decoded into an Effect."""


@attrs.frozen
class ResourceEffect:
    key: ResourceKey = attrs.field(converter=ResourceKey)
    delta: float
    kind = "resource"


@attrs.frozen
class ScoreEffect:
    key: ScoreKey = attrs.field(converter=ScoreKey)
    delta: float
    kind = "score"


@attrs.frozen
class StatEffect:
    key: StatKey = attrs.field(converter=StatKey)
    delta: float
    kind = "stat"


@attrs.frozen
class ResearchEffect:
    branch: Branch = attrs.field(converter=Branch)
    delta: float
    kind = "research"


@attrs.frozen
class GlobalSafetyEffect:
    delta: float
    kind = "global_safety"


@attrs.frozen
class ExposureEffect:
    delta: float
    kind = "exposure"


@attrs.frozen
class UnlockAgiEffect:
    kind = "unlock_agi"


@attrs.frozen
class LogEffect:
    """A narrative note added to the game log. Changes no numbers."""
    message: str
    kind = "log"


Effect = Union[
    ResourceEffect,
    ScoreEffect,
    StatEffect,
    ResearchEffect,
    GlobalSafetyEffect,
    ExposureEffect,
    UnlockAgiEffect,
    LogEffect,
]

DELTA_EFFECT_TYPES = (ResourceEffect, ScoreEffect, StatEffect, ResearchEffect, GlobalSafetyEffect, ExposureEffect)


def apply_effect(state: GameState, faction: FactionState, effect: Effect):
    """Apply one effect to `faction` (or to the world, for global safety)."""
    if isinstance(effect, ResourceEffect):
        apply_resource_delta(faction, {effect.key: effect.delta})
    elif isinstance(effect, ScoreEffect):
        apply_score_delta(faction, effect.key, effect.delta)
    elif isinstance(effect, StatEffect):
        apply_stat_delta(faction, effect.key, effect.delta)
    elif isinstance(effect, ResearchEffect):
        apply_research_delta(faction, effect.branch, effect.delta)
    elif isinstance(effect, GlobalSafetyEffect):
        apply_global_safety_delta(state, effect.delta)
    elif isinstance(effect, ExposureEffect):
        apply_exposure_delta(faction, effect.delta)
    elif isinstance(effect, UnlockAgiEffect):
        faction.can_deploy_agi = True
    elif isinstance(effect, LogEffect):
        state.log.append(effect.message)
    else:
        raise TypeError(f"Unhandled effect type: {type(effect).__name__}")


def describe_effect(effect: Effect) -> str:
    """Short human-readable form, e.g. "trust +3" or "unlock AGI"."""
    if isinstance(effect, (ResourceEffect, ScoreEffect, StatEffect)):
        return f"{effect.key.value} {effect.delta:+g}"
    elif isinstance(effect, ResearchEffect):
        return f"{effect.branch.value} research {effect.delta:+g}"
    elif isinstance(effect, GlobalSafetyEffect):
        return f"global safety {effect.delta:+g}"
    elif isinstance(effect, ExposureEffect):
        return f"exposure {effect.delta:+g}"
    elif isinstance(effect, UnlockAgiEffect):
        return "unlock AGI"
    elif isinstance(effect, LogEffect):
        return f"log: {effect.message}"
    raise TypeError(f"Unhandled effect type: {type(effect).__name__}")


def effect_to_dict(effect: Effect) -> Dict[str, Any]:
    data = {"kind": effect.kind}
    for name, value in attrs.asdict(effect, recurse=False).items():
        data[name] = value.value if isinstance(value, Enum) else value
    return data


def _parse_delta(raw: Dict[str, Any]) -> float:
    delta = raw.get("delta")
    # bool is an int subclass, but "delta": true is not a number
    if isinstance(delta, bool) or not isinstance(delta, (int, float)):
        raise EffectValidationError(f"Effect delta must be a number, got {delta!r}")
    if not math.isfinite(delta):
        raise EffectValidationError(f"Effect delta must be finite, got {delta!r}")
    return float(delta)


def _parse_enum(enum_cls, raw: Dict[str, Any], field: str):
    value = raw.get(field)
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise EffectValidationError(f"Invalid {field} {value!r}; expected one of {valid}") from None


def parse_effect(raw: Any) -> Effect:
    """Decode a raw JSON object into an Effect, or raise EffectValidationError."""
    if not isinstance(raw, dict):
        raise EffectValidationError(f"Effect must be an object, got {type(raw).__name__}")

    kind = raw.get("kind")
    if kind == "resource":
        return ResourceEffect(key=_parse_enum(ResourceKey, raw, "key"), delta=_parse_delta(raw))
    elif kind == "score":
        return ScoreEffect(key=_parse_enum(ScoreKey, raw, "key"), delta=_parse_delta(raw))
    elif kind == "stat":
        return StatEffect(key=_parse_enum(StatKey, raw, "key"), delta=_parse_delta(raw))
    elif kind == "research":
        return ResearchEffect(branch=_parse_enum(Branch, raw, "branch"), delta=_parse_delta(raw))
    elif kind == "global_safety":
        return GlobalSafetyEffect(delta=_parse_delta(raw))
    elif kind == "exposure":
        return ExposureEffect(delta=_parse_delta(raw))
    elif kind == "unlock_agi":
        return UnlockAgiEffect()
    elif kind == "log":
        message = raw.get("message")
        if not isinstance(message, str) or not message.strip():
            raise EffectValidationError("Log effect requires a non-empty message")
        return LogEffect(message=message.strip())
    raise EffectValidationError(f"Unknown effect kind: {kind!r}")
