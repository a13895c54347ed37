import pytest

from agirace.core.enums import Branch, ResourceKey, ScoreKey, StatKey
from agirace.core.game_state import GameState, create_initial_state
from agirace.core.stats import (
    apply_exposure_delta,
    apply_global_safety_delta,
    apply_research_delta,
    apply_resource_delta,
    apply_score_delta,
    apply_stat_delta,
    compute_global_safety,
    compute_research_gain,
    recompute_global_safety,
)
from agirace.core.utils import clamp, round1


def test_clamp_and_round1():
    assert clamp(120, 0, 100) == 100
    assert clamp(-5, 0, 100) == 0
    assert clamp(42, 0, 100) == 42
    assert round1(33.333) == 33.3
    assert round1(66.66) == 66.7
    # halves round up, not to even
    assert round1(0.25) == 0.3
    assert round1(-0.25) == -0.2


def test_resource_delta_is_clamped_both_ways():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]

    apply_resource_delta(faction, {ResourceKey.TRUST: 500, "compute": -500})

    assert faction.resources.trust == 100
    assert faction.resources.compute == 0


def test_resource_delta_rejects_unknown_key():
    faction = create_initial_state().factions["us_lab_a"]
    with pytest.raises(ValueError):
        apply_resource_delta(faction, {"morale": 5})


def test_score_has_a_floor_but_no_ceiling():
    faction = create_initial_state().factions["us_lab_a"]

    apply_score_delta(faction, ScoreKey.CAPABILITY, 250)
    apply_score_delta(faction, ScoreKey.SAFETY, -250)

    assert faction.capability_score == 260
    assert faction.safety_score == 0


def test_stat_delta_is_clamped():
    faction = create_initial_state().factions["us_lab_a"]
    apply_stat_delta(faction, StatKey.OPSEC, 200)
    apply_stat_delta(faction, "safety_culture", -200)
    assert faction.opsec == 100
    assert faction.safety_culture == 0


def test_research_and_exposure_never_go_negative():
    faction = create_initial_state().factions["us_lab_a"]
    apply_research_delta(faction, Branch.SAFETY, -3)
    apply_exposure_delta(faction, -1)
    assert faction.research[Branch.SAFETY] == 0
    assert faction.exposure == 0

    apply_research_delta(faction, "ops", 4.5)
    assert faction.research[Branch.OPS] == 4.5


def test_research_gain_uses_resources():
    faction = create_initial_state().factions["us_lab_a"]
    # 12 + 60 * 0.15 + 80 * 0.12 + 60 * 0.1
    assert compute_research_gain(faction, Branch.CAPABILITIES, 12) == pytest.approx(36.6)
    # 12 + 80 * 0.1 + safety culture 80 * 0.15 + 60 * 0.05
    assert compute_research_gain(faction, Branch.SAFETY, 12) == pytest.approx(35.0)


def test_global_safety_is_capability_weighted():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.safety_score = 0
        faction.capability_score = 0
    state.factions["us_lab_a"].capability_score = 60
    state.factions["us_lab_a"].safety_score = 100

    # us_lab_a weighs 60, the other four weigh the floor of 10 each
    assert compute_global_safety(state) == 60.0


def test_global_safety_of_empty_world_is_zero():
    assert compute_global_safety(GameState()) == 0.0


def test_initial_global_safety_matches_aggregate():
    state = create_initial_state()
    assert state.global_safety == compute_global_safety(state)
    assert 0 < state.global_safety < 100


def test_drift_is_folded_into_recompute_and_reset():
    state = create_initial_state()
    aggregate = compute_global_safety(state)

    apply_global_safety_delta(state, 4)
    apply_global_safety_delta(state, -1)
    assert state.global_safety_drift == 3

    recompute_global_safety(state)

    assert state.global_safety == round1(aggregate + 3)
    assert state.global_safety_drift == 0


def test_recompute_clamps_drift():
    state = create_initial_state()
    apply_global_safety_delta(state, -500)
    assert recompute_global_safety(state) == 0
