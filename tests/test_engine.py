import copy

import attrs
import pytest

from agirace.ai.heuristic import decide_actions
from agirace.core.actions import ACTION_MAP
from agirace.core.constants import MAX_TURN, SAFETY_THRESHOLDS
from agirace.core.engine import TurnEngine, check_government_victory, resolve_turn
from agirace.core.enums import Branch, FactionType, Openness, Outcome
from agirace.core.game_state import ActionChoice, FactionTemplate, create_initial_state
from agirace.core.persistence import serialize_state
from agirace.utils import seeded_rng


def constant_rng(value):
    return lambda: value


def no_draws():
    def rng():
        raise AssertionError("rng should not have been drawn")
    return rng


def counting_rng(value=0.99):
    calls = []

    def rng():
        calls.append(value)
        return value
    return rng, calls


def lab(faction_id, capability, **overrides):
    values = dict(
        id=faction_id,
        name=faction_id,
        type=FactionType.LAB,
        resources=dict(compute=50, talent=50, capital=50, data=50, influence=50, trust=60),
        safety_culture=50,
        opsec=50,
        capability_score=capability,
        safety_score=30,
    )
    values.update(overrides)
    return FactionTemplate(**values)


def government(faction_id, **overrides):
    values = dict(
        id=faction_id,
        name=faction_id,
        type=FactionType.GOVERNMENT,
        resources=dict(compute=20, talent=30, capital=70, data=20, influence=80, trust=60),
        safety_culture=50,
        opsec=50,
        capability_score=0,
        safety_score=30,
    )
    values.update(overrides)
    return FactionTemplate(**values)


def test_calendar_wraps_to_next_year():
    state = create_initial_state()
    state.year = 2026
    state.quarter = 4

    resolve_turn(state, {}, no_draws())

    assert state.turn == 1
    assert state.quarter == 1
    assert state.year == 2027
    assert state.log[0] == "--- 2027 Q1 ---"


def test_quarter_advances_within_year():
    state = create_initial_state()
    resolve_turn(state, {}, no_draws())
    assert (state.year, state.quarter) == (2026, 2)


def test_lab_income_scales_with_trust_and_influence():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]
    faction.resources.trust = 100
    faction.resources.influence = 100
    faction.resources.capital = 20

    resolve_turn(state, {}, no_draws())

    assert faction.resources.capital - 20 > 4


def test_government_income_is_smaller_than_lab_income():
    state = create_initial_state()
    for faction_id in ("us_lab_a", "us_gov"):
        resources = state.factions[faction_id].resources
        resources.trust = 50
        resources.influence = 50
        resources.capital = 20

    resolve_turn(state, {}, no_draws())

    lab_income = state.factions["us_lab_a"].resources.capital - 20
    gov_income = state.factions["us_gov"].resources.capital - 20
    assert 0 < gov_income < lab_income


def test_income_does_not_push_capital_past_max():
    state = create_initial_state()
    state.factions["us_lab_b"].resources.capital = 99
    resolve_turn(state, {}, no_draws())
    assert state.factions["us_lab_b"].resources.capital == 100


def test_only_two_actions_per_turn_are_applied():
    state = create_initial_state()
    faction = state.factions["us_lab_b"]
    faction.resources.compute = 50

    choices = {"us_lab_b": [ActionChoice("build_compute", Openness.OPEN)] * 4}
    resolve_turn(state, choices, no_draws())

    assert faction.resources.compute == 66
    # 80 + income 7 - 2 * 10
    assert faction.resources.capital == pytest.approx(67)


def test_action_invalid_for_faction_type_is_logged_and_ignored():
    state = create_initial_state()
    gov = state.factions["us_gov"]

    resolve_turn(state, {"us_gov": [ActionChoice("build_compute")]}, no_draws())

    assert gov.resources.compute == 20
    # 70 + income (3 + 90 * 0.02 + 70 * 0.01), no build cost
    assert gov.resources.capital == pytest.approx(75.5)
    assert any("invalid action" in entry for entry in state.log)


def test_unknown_action_is_logged_not_raised():
    state = create_initial_state()
    resolve_turn(state, {"us_lab_a": [ActionChoice("launch_rockets")]}, no_draws())
    assert any("invalid action" in entry for entry in state.log)
    assert not state.game_over


def test_unknown_faction_in_choices_is_logged():
    state = create_initial_state()
    resolve_turn(state, {"eu_gov": [ActionChoice("policy")]}, no_draws())
    assert any("unknown faction eu_gov" in entry for entry in state.log)


def test_openness_trades_research_for_trust_and_exposure():
    open_state = create_initial_state()
    secret_state = create_initial_state()

    resolve_turn(open_state, {"us_lab_a": [ActionChoice("research_capabilities", Openness.OPEN)]}, constant_rng(0.99))
    resolve_turn(secret_state, {"us_lab_a": [ActionChoice("research_capabilities", Openness.SECRET)]},
                 constant_rng(0.99))

    open_lab = open_state.factions["us_lab_a"]
    secret_lab = secret_state.factions["us_lab_a"]
    assert secret_lab.research[Branch.CAPABILITIES] == pytest.approx(open_lab.research[Branch.CAPABILITIES] * 1.1 / 0.9)
    assert open_lab.resources.trust == 62
    assert secret_lab.resources.trust == 57
    assert open_lab.exposure == 0
    assert secret_lab.exposure == 1
    assert open_lab.safety_score == 26
    assert secret_lab.safety_score == 23
    # both unlock Efficient Training; secrecy adds one more capability point
    assert "cap_eff_training" in open_lab.unlocked_techs
    assert "cap_eff_training" in secret_lab.unlocked_techs
    assert secret_lab.capability_score == open_lab.capability_score + 1


def test_detection_penalizes_and_resets_exposure():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]
    faction.exposure = 5
    faction.opsec = 0

    resolve_turn(state, {}, constant_rng(0.0))

    assert faction.exposure == 0
    assert faction.resources.trust == 52
    assert faction.resources.influence == 35
    assert faction.safety_score == 20
    assert any("exposed for secret activity" in entry for entry in state.log)


def test_undetected_faction_keeps_exposure():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]
    faction.exposure = 5

    resolve_turn(state, {}, constant_rng(0.99))

    assert faction.exposure == 5
    assert faction.resources.trust == 60


def test_detection_draws_once_per_exposed_faction():
    state = create_initial_state()
    state.factions["us_lab_a"].exposure = 1
    state.factions["cn_gov"].exposure = 3
    rng, calls = counting_rng()

    resolve_turn(state, {}, rng)

    assert len(calls) == 2


def test_espionage_success_copies_without_destroying():
    state = create_initial_state()
    state.factions["us_lab_a"].research[Branch.CAPABILITIES] = 30

    choices = {"cn_lab": [ActionChoice("espionage", Openness.SECRET, "us_lab_a")]}
    resolve_turn(state, choices, constant_rng(0.0))

    assert state.factions["cn_lab"].research[Branch.CAPABILITIES] == 12
    assert state.factions["us_lab_a"].research[Branch.CAPABILITIES] == 30
    assert any("stole 12.0" in entry for entry in state.log)


def test_espionage_steals_at_most_what_target_has():
    state = create_initial_state()
    state.factions["us_lab_a"].research[Branch.CAPABILITIES] = 5

    resolve_turn(state, {"cn_lab": [ActionChoice("espionage", Openness.SECRET, "us_lab_a")]}, constant_rng(0.0))

    assert state.factions["cn_lab"].research[Branch.CAPABILITIES] == 5


def test_espionage_failure_adds_exposure():
    state = create_initial_state()

    resolve_turn(state, {"cn_lab": [ActionChoice("espionage", Openness.SECRET, "us_lab_a")]}, constant_rng(0.99))

    attacker = state.factions["cn_lab"]
    # 2 for the secret action plus 2 for getting caught out
    assert attacker.exposure == 4
    assert attacker.research[Branch.CAPABILITIES] == 0
    assert any("failed an espionage attempt" in entry for entry in state.log)


def test_espionage_is_always_secret():
    state = create_initial_state()

    resolve_turn(state, {"cn_lab": [ActionChoice("espionage", Openness.OPEN, "us_lab_a")]}, constant_rng(0.99))

    assert state.factions["cn_lab"].resources.trust == 42


def test_espionage_without_target_is_skipped_without_a_draw():
    state = create_initial_state()
    trust_before = state.factions["cn_lab"].resources.trust

    resolve_turn(state, {"cn_lab": [ActionChoice("espionage", Openness.SECRET)]}, no_draws())

    assert state.factions["cn_lab"].exposure == 0
    assert state.factions["cn_lab"].resources.trust == trust_before
    assert any("no eligible target" in entry for entry in state.log)


def test_espionage_against_unknown_target_is_skipped():
    state = create_initial_state()
    resolve_turn(state, {"cn_lab": [ActionChoice("espionage", Openness.SECRET, "nobody")]}, no_draws())
    assert any("invalid target" in entry for entry in state.log)


def test_subsidize_supports_lowest_capability_allied_lab():
    state = create_initial_state()

    resolve_turn(state, {"us_gov": [ActionChoice("subsidize")]}, no_draws())

    # 60 + income 7.2 + subsidy 6
    assert state.factions["us_lab_a"].resources.capital == pytest.approx(73.2)
    # 70 + income 5.5 - cost 8
    assert state.factions["us_gov"].resources.capital == pytest.approx(67.5)
    assert "US Executive subsidized OpenBrain." in state.log


def test_subsidize_without_capital_falls_back_to_policy():
    state = create_initial_state()
    gov = state.factions["us_gov"]
    gov.resources.capital = 10

    resolve_turn(state, {"us_gov": [ActionChoice("subsidize")]}, no_draws())

    assert gov.resources.influence == 93
    assert gov.research[Branch.POLICY] > 0
    assert state.factions["us_lab_a"].resources.capital == pytest.approx(67.2)
    assert any("pursues policy instead" in entry for entry in state.log)


def test_regulate_hits_highest_capability_lab_outside_bloc():
    state = create_initial_state([
        lab("us_lab_a", 60),
        lab("us_lab_b", 80),
        lab("cn_lab", 40),
        government("us_gov"),
    ])

    resolve_turn(state, {"us_gov": [ActionChoice("regulate")]}, no_draws())

    assert state.factions["cn_lab"].capability_score == 36
    assert state.factions["cn_lab"].resources.compute == 44
    assert state.factions["us_lab_b"].capability_score == 80
    assert any("imposed regulations on cn_lab" in entry for entry in state.log)


def test_regulate_without_rival_lab_is_skipped():
    state = create_initial_state([lab("us_lab_a", 60), government("us_gov")])

    resolve_turn(state, {"us_gov": [ActionChoice("regulate")]}, no_draws())

    assert state.factions["us_lab_a"].capability_score == 60
    assert any("no eligible target" in entry for entry in state.log)


def test_counterintel_raises_opsec():
    state = create_initial_state()
    resolve_turn(state, {"us_gov": [ActionChoice("counterintel")]}, no_draws())
    assert state.factions["us_gov"].opsec == 56


def test_deploy_without_breakthrough_does_nothing():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.resources.influence = 50
        faction.resources.trust = 50
        faction.capability_score = 30

    resolve_turn(state, {"us_lab_a": [ActionChoice("deploy_agi")]}, seeded_rng(42))

    assert not state.game_over
    assert any("without the breakthrough" in entry for entry in state.log)


def test_safe_agi_deployment_wins():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.safety_score = SAFETY_THRESHOLDS.faction + 10
    state.factions["us_lab_a"].can_deploy_agi = True

    resolve_turn(state, {"us_lab_a": [ActionChoice("deploy_agi")]}, seeded_rng(42))

    assert state.game_over
    assert state.winner_id == "us_lab_a"
    assert state.outcome == Outcome.SAFE_AGI
    assert any("safe AGI" in entry for entry in state.log)


def test_unsafe_agi_deployment_is_a_catastrophe():
    state = create_initial_state()
    faction = state.factions["us_lab_a"]
    faction.can_deploy_agi = True
    faction.safety_score = 0
    state.global_safety = 0

    resolve_turn(state, {"us_lab_a": [ActionChoice("deploy_agi")]}, seeded_rng(42))

    assert state.game_over
    assert state.winner_id is None
    assert state.outcome == Outcome.CATASTROPHE
    assert any("catastrophe" in entry for entry in state.log)


def test_only_first_deployment_counts():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.safety_score = 80
    state.factions["us_lab_a"].can_deploy_agi = True
    state.factions["us_lab_b"].can_deploy_agi = True

    choices = {
        "us_lab_a": [ActionChoice("deploy_agi")],
        "us_lab_b": [ActionChoice("deploy_agi")],
    }
    resolve_turn(state, choices, seeded_rng(42))

    assert state.winner_id == "us_lab_a"
    assert sum("deployed" in entry for entry in state.log) == 1


def test_finished_game_is_not_resolved_again():
    state = create_initial_state()
    state.game_over = True
    before = copy.deepcopy(state)

    resolve_turn(state, {"us_lab_a": [ActionChoice("research_capabilities")]}, no_draws())

    assert state == before


def test_stalemate_at_max_turn():
    state = create_initial_state()
    state.turn = MAX_TURN - 1

    resolve_turn(state, {}, no_draws())

    assert state.game_over
    assert state.outcome == Outcome.STALEMATE
    assert state.winner_id is None
    assert any("stalemate" in entry for entry in state.log)


def test_regulatory_victory_at_max_turn():
    state = create_initial_state()
    state.turn = MAX_TURN - 1
    for faction in state.factions.values():
        faction.safety_score = 70

    resolve_turn(state, {}, no_draws())

    assert state.game_over
    assert state.outcome == Outcome.REGULATORY
    assert state.winner_id == "us_gov"
    assert any("regulatory victory" in entry for entry in state.log)


def test_check_government_victory_is_pure():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.safety_score = 70
    state.global_safety = 70
    state.factions["cn_gov"].resources.influence = 95
    before = copy.deepcopy(state)

    result = check_government_victory(state)

    assert result.victory
    assert result.winner_id == "cn_gov"
    assert state == before


def test_check_government_victory_requires_every_lab_safe():
    state = create_initial_state()
    for faction in state.factions.values():
        faction.safety_score = 70
    state.global_safety = 70
    state.factions["cn_lab"].safety_score = 64

    result = check_government_victory(state)

    assert not result.victory
    assert result.winner_id is None


def test_same_seed_replays_identically():
    first = create_initial_state()
    second = copy.deepcopy(first)

    for state in (first, second):
        rng = seeded_rng(7)
        for _ in range(12):
            choices = {faction_id: decide_actions(state, faction_id, rng) for faction_id in state.factions}
            resolve_turn(state, choices, rng)

    assert serialize_state(first) == serialize_state(second)
    assert first.log == second.log


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_global_safety_stays_in_bounds(seed):
    state = create_initial_state()
    rng = seeded_rng(seed)
    for _ in range(MAX_TURN):
        if state.game_over:
            break
        choices = {faction_id: decide_actions(state, faction_id, rng) for faction_id in state.factions}
        resolve_turn(state, choices, rng)
        assert 0 <= state.global_safety <= 100
        assert state.global_safety_drift == 0


def test_resolve_turn_accepts_custom_action_table():
    state = create_initial_state()
    only_policy = {"policy": ACTION_MAP["policy"]}

    resolve_turn(state, {"us_lab_a": [ActionChoice("build_compute")]}, no_draws(), actions=only_policy)

    assert state.factions["us_lab_a"].resources.compute == 60
    assert any("invalid action" in entry for entry in state.log)


def test_turn_engine_accepts_custom_tech_tree():
    state = create_initial_state()
    state.factions["us_lab_a"].research[Branch.CAPABILITIES] = 100
    engine = TurnEngine(tech_tree=())

    engine.resolve_turn(state, {}, no_draws())

    assert state.factions["us_lab_a"].unlocked_techs == set()


def test_targeted_actions_come_from_the_action_table():
    assert {action.id for action in ACTION_MAP.values() if action.requires_target} == {
        "espionage", "subsidize", "regulate",
    }

    state = create_initial_state()
    research_before = state.factions["us_gov"].research[Branch.POLICY]
    targeted_policy = {"policy": attrs.evolve(ACTION_MAP["policy"], requires_target=True)}

    resolve_turn(state, {"us_gov": [ActionChoice("policy")]}, no_draws(), actions=targeted_policy)

    assert any("found no eligible target for Policy" in entry for entry in state.log)
    assert state.factions["us_gov"].research[Branch.POLICY] == research_before
