import pytest

from agirace.core.effects import EffectValidationError, ResearchEffect, ResourceEffect
from agirace.core.enums import Branch
from agirace.core.game_state import create_initial_state
from agirace.data.events import EVENTS
from agirace.events import (
    EffectTarget,
    EventEffect,
    apply_event_effects,
    parse_event_effect,
    resolve_event_choice,
    select_event,
)


def scripted_rng(*values):
    it = iter(values)
    return lambda: next(it)


def get_event(event_id):
    return next(event for event in EVENTS if event.id == event_id)


def test_every_event_has_distinct_choices():
    assert len({event.id for event in EVENTS}) == len(EVENTS)
    for event in EVENTS:
        assert event.choices
        assert len({choice.id for choice in event.choices}) == len(event.choices)


def test_no_event_when_first_draw_misses():
    assert select_event(EVENTS, create_initial_state(), scripted_rng(0.5)) is None


def test_weighted_pick_with_low_roll_takes_first_eligible():
    event = select_event(EVENTS, create_initial_state(), scripted_rng(0.1, 0.0))
    assert event.id == "supply_shock"


def test_recent_events_are_not_repeated():
    event = select_event(EVENTS, create_initial_state(), scripted_rng(0.1, 0.0), history=["supply_shock"])
    assert event.id == "alignment_incident"


def test_turn_gated_events():
    state = create_initial_state()
    # at turn 0 the summit and the exodus are not yet possible
    assert select_event(EVENTS, state, scripted_rng(0.1, 0.999)).id == "funding_surge"

    state.turn = 10
    assert select_event(EVENTS, state, scripted_rng(0.1, 0.999)).id == "talent_exodus"


def test_no_eligible_events():
    state = create_initial_state()
    summit = get_event("global_summit")
    assert select_event((summit,), state, scripted_rng(0.1)) is None
    assert select_event((get_event("supply_shock"),), state, scripted_rng(0.1), history=["supply_shock"]) is None
    assert select_event((), state, scripted_rng(0.1)) is None


def test_resolve_choice_applies_effects_and_logs():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]

    resolve_event_choice(state, get_event("alignment_incident"), "full_transparency", "us_lab_a")

    assert faction.resources.trust == 64
    assert faction.safety_score == 30
    assert faction.capability_score == 8
    assert state.log[-1] == "Alignment Incident: OpenBrain chose to full transparency."


def test_resolve_unknown_choice_raises():
    state = create_initial_state()
    with pytest.raises(ValueError):
        resolve_event_choice(state, get_event("alignment_incident"), "deny_everything", "us_lab_a")


def test_resolve_for_unknown_faction_raises():
    state = create_initial_state()
    with pytest.raises(ValueError):
        resolve_event_choice(state, get_event("alignment_incident"), "full_transparency", "eu_gov")


def test_all_labs_effect_and_single_global_safety_shift():
    state = create_initial_state()
    capabilities = {lab.id: lab.capability_score for lab in state.labs()}

    resolve_event_choice(state, get_event("talent_exodus"), "industry_wide_slowdown", "us_gov")

    for lab in state.labs():
        assert lab.capability_score == capabilities[lab.id] - 2
    assert state.global_safety_drift == 2


def test_all_factions_target():
    state = create_initial_state()
    trust = {f.id: f.resources.trust for f in state.factions.values()}

    apply_event_effects(state, [EventEffect(ResourceEffect(key="trust", delta=-5), EffectTarget.ALL_FACTIONS)],
                        "cn_gov")

    for faction in state.factions.values():
        assert faction.resources.trust == trust[faction.id] - 5


def test_research_effects_only_target_the_responder():
    with pytest.raises(ValueError):
        EventEffect(ResearchEffect(branch=Branch.SAFETY, delta=3), EffectTarget.ALL_LABS)


def test_parse_event_effect():
    event_effect = parse_event_effect({"kind": "score", "key": "safety_score", "delta": 2, "target": "all_labs"})
    assert event_effect.target is EffectTarget.ALL_LABS

    assert parse_event_effect({"kind": "resource", "key": "data", "delta": 1}).target is EffectTarget.FACTION

    with pytest.raises(EffectValidationError):
        parse_event_effect({"kind": "research", "branch": "ops", "delta": 2, "target": "all_labs"})
    with pytest.raises(EffectValidationError):
        parse_event_effect({"kind": "resource", "key": "data", "delta": 1, "target": "everyone"})
