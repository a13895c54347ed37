"""Default technology tree: four branches of six chained nodes each."""
from agirace.core.effects import ResourceEffect, ScoreEffect, StatEffect, UnlockAgiEffect
from agirace.core.enums import Branch, ResourceKey, ScoreKey, StatKey
from agirace.core.tech import TechNode


def _capability(delta):
    return ScoreEffect(key=ScoreKey.CAPABILITY, delta=delta)


def _safety(delta):
    return ScoreEffect(key=ScoreKey.SAFETY, delta=delta)


def _resource(key, delta):
    return ResourceEffect(key=key, delta=delta)


def _chain(branch, nodes):
    """Build a linear chain where each node requires the previous one."""
    chained = []
    previous = None
    for tech_id, name, cost, effects in nodes:
        chained.append(TechNode(
            id=tech_id,
            name=name,
            branch=branch,
            cost=cost,
            prereqs=(previous,) if previous else (),
            effects=effects,
        ))
        previous = tech_id
    return chained


CAPABILITIES = _chain(Branch.CAPABILITIES, [
    ("cap_eff_training", "Efficient Training", 20, [_capability(6)]),
    ("cap_arch_breakthrough", "Coding Automation", 25, [_capability(7)]),
    ("cap_multimodal", "Reliable Agents", 30, [_capability(8)]),
    ("cap_long_horizon", "Automated AI R&D", 35, [_capability(9)]),
    ("cap_scalable_reasoning", "Agent Swarms", 40, [_capability(10)]),
    ("cap_agi_breakthrough", "AGI Breakthrough", 50, [_capability(12), UnlockAgiEffect()]),
])

SAFETY = _chain(Branch.SAFETY, [
    ("safe_alignment_benchmarks", "Alignment Benchmarks", 18, [_safety(6)]),
    ("safe_interpretability", "Mechanistic Interpretability", 22,
     [_safety(7), StatEffect(key=StatKey.SAFETY_CULTURE, delta=2)]),
    ("safe_adversarial", "Adversarial Evaluation", 26, [_safety(8)]),
    ("safe_monitoring", "Reasoning Monitors", 30, [_safety(9)]),
    ("safe_scaling_laws", "Safety Scaling Laws", 34,
     [_safety(10), StatEffect(key=StatKey.SAFETY_CULTURE, delta=3)]),
    ("safe_guardrails", "Corrigibility Guarantees", 40, [_safety(12)]),
])

OPS = _chain(Branch.OPS, [
    ("ops_compute_scaling", "Datacenter Scaling", 16, [_resource(ResourceKey.COMPUTE, 6)]),
    ("ops_energy_contracts", "Energy Contracts", 20, [_resource(ResourceKey.CAPITAL, 5)]),
    ("ops_data_pipeline", "Synthetic Data Pipeline", 22, [_resource(ResourceKey.DATA, 6)]),
    ("ops_ai_ops", "Automated Operations", 26, [_resource(ResourceKey.CAPITAL, 6)]),
    ("ops_model_compression", "Model Compression", 30, [_resource(ResourceKey.COMPUTE, 7)]),
    ("ops_reliability", "Reliability Engineering", 34, [_resource(ResourceKey.TRUST, 6)]),
])

POLICY = _chain(Branch.POLICY, [
    ("pol_audit_standards", "Audit Standards", 16, [_resource(ResourceKey.TRUST, 4)]),
    ("pol_compute_reporting", "Compute Reporting", 20, [_resource(ResourceKey.INFLUENCE, 5)]),
    ("pol_joint_safety_lab", "Joint Safety Institute", 24, [_safety(6)]),
    ("pol_non_prolif", "Non-Proliferation Framework", 28, [_resource(ResourceKey.INFLUENCE, 6)]),
    ("pol_export_controls", "Export Controls", 30, [_resource(ResourceKey.INFLUENCE, 7)]),
    ("pol_mutual_inspection", "Mutual Inspection Regime", 34,
     [_safety(8), _resource(ResourceKey.TRUST, 4)]),
])

TECH_TREE = tuple(CAPABILITIES + SAFETY + OPS + POLICY)
