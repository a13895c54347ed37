"""Fixed tunables for the turn engine.

Grouped parameters are frozen attrs objects so they can be passed around and
overridden as a unit (e.g. ``attrs.evolve(DETECTION, max_chance=0.5)``).
"""
from typing import Dict

import attrs

from agirace.core.enums import Openness

MAX_STAT = 100.0
MIN_STAT = 0.0

ACTION_POINTS_PER_TURN = 2

TURN_START_YEAR = 2026
TURN_START_QUARTER = 1

# 8 years of quarters
MAX_TURN = 32
# Non-terminal victories are not awarded before this turn
MIN_VICTORY_TURN = 24

MAX_LOG_ENTRIES = 50
SAVE_VERSION = 1


@attrs.frozen
class SafetyThresholds:
    faction: float = 70.0
    global_safety: float = 60.0


@attrs.frozen
class OpennessModifier:
    """Side effects applied to a faction for every action of a given openness."""
    research: float
    trust_delta: float
    global_safety_delta: float
    safety_delta: float
    capability_delta: float


@attrs.frozen
class DetectionParams:
    base_chance: float = 0.1
    per_exposure: float = 0.08
    opsec_factor: float = 0.003
    max_chance: float = 0.65
    trust_penalty: float = 8.0
    influence_penalty: float = 5.0
    safety_penalty: float = 5.0


@attrs.frozen
class EspionageParams:
    base_success: float = 0.35
    opsec_attack_factor: float = 0.002
    opsec_defense_factor: float = 0.004
    min_success: float = 0.05
    max_success: float = 0.85
    max_steal: float = 12.0
    failure_exposure: float = 2.0


@attrs.frozen
class IncomeParams:
    lab_base: float = 4.0
    lab_trust_factor: float = 0.04
    lab_influence_factor: float = 0.02
    government_base: float = 3.0
    government_influence_factor: float = 0.02
    government_trust_factor: float = 0.01


@attrs.frozen
class SubsidyParams:
    min_capital: float = 30.0
    amount: float = 6.0


@attrs.frozen
class RegulationParams:
    compute_penalty: float = 6.0
    influence_penalty: float = 2.0
    capability_penalty: float = 4.0


@attrs.frozen
class GovernmentVictoryParams:
    all_labs_safe_threshold: float = 65.0
    global_safety_threshold: float = 60.0


@attrs.frozen
class VictoryThresholds:
    # dominant: capability floor and required lead over the runner-up lab
    dominant_capability: float = 90.0
    dominant_lead_ratio: float = 2.0
    # public_trust
    public_trust: float = 97.0
    public_trust_capability: float = 80.0
    # alliance / control (resources are capped at MAX_STAT)
    alliance_influence: float = 95.0
    alliance_trust: float = 93.0
    alliance_min_partners: int = 4
    control_influence: float = 95.0
    control_max_lab_capability: float = 15.0
    # losses
    obsolescence_gap: float = 50.0
    collapse_trust: float = 20.0
    coup_influence: float = 30.0
    coup_lab_capability: float = 70.0


SAFETY_THRESHOLDS = SafetyThresholds()

OPENNESS_MULTIPLIERS: Dict[Openness, OpennessModifier] = {
    Openness.OPEN: OpennessModifier(
        research=0.9, trust_delta=2.0, global_safety_delta=1.0, safety_delta=1.0, capability_delta=0.0
    ),
    Openness.SECRET: OpennessModifier(
        research=1.1, trust_delta=-3.0, global_safety_delta=-1.0, safety_delta=-2.0, capability_delta=1.0
    ),
}

DETECTION = DetectionParams()
ESPIONAGE = EspionageParams()
INCOME = IncomeParams()
SUBSIDY = SubsidyParams()
REGULATION = RegulationParams()
COUNTERINTEL_OPSEC_GAIN = 6.0
GOVERNMENT_VICTORY = GovernmentVictoryParams()
VICTORY_THRESHOLDS = VictoryThresholds()
