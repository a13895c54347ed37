import pytest

from agirace.core.effects import (
    EffectValidationError,
    ExposureEffect,
    GlobalSafetyEffect,
    LogEffect,
    ResearchEffect,
    ResourceEffect,
    ScoreEffect,
    StatEffect,
    UnlockAgiEffect,
    apply_effect,
    describe_effect,
    effect_to_dict,
    parse_effect,
)
from agirace.core.enums import Branch, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import create_initial_state


def test_apply_each_effect_kind():
    state = create_initial_state()
    faction = state.factions["cn_lab"]

    apply_effect(state, faction, ResourceEffect(key="data", delta=10))
    apply_effect(state, faction, ScoreEffect(key=ScoreKey.SAFETY, delta=5))
    apply_effect(state, faction, StatEffect(key=StatKey.OPSEC, delta=-10))
    apply_effect(state, faction, ResearchEffect(branch="ops", delta=7))
    apply_effect(state, faction, ExposureEffect(delta=2))
    apply_effect(state, faction, GlobalSafetyEffect(delta=3))
    apply_effect(state, faction, UnlockAgiEffect())
    apply_effect(state, faction, LogEffect(message="Rumors spread."))

    assert faction.resources.data == 90
    assert faction.safety_score == 20
    assert faction.opsec == 60
    assert faction.research[Branch.OPS] == 7
    assert faction.exposure == 2
    assert state.global_safety_drift == 3
    assert faction.can_deploy_agi
    assert state.log[-1] == "Rumors spread."


def test_apply_unknown_effect_raises():
    state = create_initial_state()
    with pytest.raises(TypeError):
        apply_effect(state, state.factions["cn_lab"], object())


def test_effect_fields_are_converted():
    effect = ResourceEffect(key="trust", delta=2)
    assert effect.key is ResourceKey.TRUST
    with pytest.raises(ValueError):
        ResourceEffect(key="morale", delta=2)


def test_describe_effect():
    assert describe_effect(ResourceEffect(key="trust", delta=3)) == "trust +3"
    assert describe_effect(ScoreEffect(key="capability_score", delta=-2)) == "capability_score -2"
    assert describe_effect(ResearchEffect(branch="safety", delta=1.5)) == "safety research +1.5"
    assert describe_effect(GlobalSafetyEffect(delta=4)) == "global safety +4"
    assert describe_effect(UnlockAgiEffect()) == "unlock AGI"


def test_effect_to_dict_parses_back():
    for effect in (
        ResourceEffect(key="compute", delta=-4.0),
        StatEffect(key="safety_culture", delta=2.0),
        ResearchEffect(branch="policy", delta=6.0),
        GlobalSafetyEffect(delta=-1.0),
        UnlockAgiEffect(),
        LogEffect(message="A summit convenes."),
    ):
        assert parse_effect(effect_to_dict(effect)) == effect


def test_effect_to_dict_uses_plain_values():
    assert effect_to_dict(ResourceEffect(key="compute", delta=-4)) == {
        "kind": "resource", "key": "compute", "delta": -4,
    }


@pytest.mark.parametrize("raw", [
    "trust +3",
    None,
    {"kind": "teleport", "delta": 1},
    {"kind": "resource", "key": "morale", "delta": 1},
    {"kind": "resource", "key": "trust"},
    {"kind": "resource", "key": "trust", "delta": "3"},
    {"kind": "resource", "key": "trust", "delta": True},
    {"kind": "score", "key": "capability_score", "delta": float("nan")},
    {"kind": "research", "branch": "alchemy", "delta": 1},
    {"kind": "log", "message": "   "},
    {"kind": "log"},
])
def test_parse_effect_rejects_malformed_input(raw):
    with pytest.raises(EffectValidationError):
        parse_effect(raw)


def test_parse_effect_strips_log_message():
    assert parse_effect({"kind": "log", "message": "  Leak!  "}) == LogEffect(message="Leak!")


def test_validation_error_is_a_value_error():
    assert issubclass(EffectValidationError, ValueError)
