"""Default random events. Each offers a choice between trade-offs."""
from agirace.core.effects import GlobalSafetyEffect, ResourceEffect, ScoreEffect, StatEffect
from agirace.core.enums import ResourceKey, ScoreKey, StatKey
from agirace.events import EffectTarget, EventChoice, EventDefinition, EventEffect


def _resource(key, delta, target=EffectTarget.FACTION):
    return EventEffect(ResourceEffect(key=key, delta=delta), target)


def _score(key, delta, target=EffectTarget.FACTION):
    return EventEffect(ScoreEffect(key=key, delta=delta), target)


EVENTS = (
    EventDefinition(
        id="supply_shock",
        title="Supply Chain Shock",
        description="An export clampdown tightens access to advanced accelerators. Compute prices spike.",
        weight=1.2,
        choices=(
            EventChoice("lobby_exemptions", "Lobby for exemptions",
                        "Spend influence and capital to secure limited exemptions.",
                        (_resource(ResourceKey.INFLUENCE, -4), _resource(ResourceKey.CAPITAL, -6),
                         _resource(ResourceKey.COMPUTE, 6))),
            EventChoice("domestic_build", "Shift to domestic buildout",
                        "Pay the premium to secure domestic supply lines.",
                        (_resource(ResourceKey.CAPITAL, -10), _resource(ResourceKey.COMPUTE, 8),
                         _score(ScoreKey.SAFETY, 2))),
            EventChoice("pause_scaling", "Pause scaling",
                        "Slow expansion and redirect effort to safety and efficiency.",
                        (_score(ScoreKey.SAFETY, 4), _score(ScoreKey.CAPABILITY, -2))),
        ),
    ),
    EventDefinition(
        id="alignment_incident",
        title="Alignment Incident",
        description="A deployed model exhibits unsafe goal pursuit. Regulators are watching.",
        weight=1.1,
        choices=(
            EventChoice("full_transparency", "Full transparency",
                        "Share details openly and issue a public safety response.",
                        (_resource(ResourceKey.TRUST, 4), _score(ScoreKey.SAFETY, 5),
                         _score(ScoreKey.CAPABILITY, -2))),
            EventChoice("contain_quietly", "Contain quietly",
                        "Patch internally and keep the incident out of headlines.",
                        (_resource(ResourceKey.TRUST, -5),
                         EventEffect(StatEffect(key=StatKey.OPSEC, delta=4)),
                         _score(ScoreKey.SAFETY, -2))),
            EventChoice("suspend_deployments", "Suspend deployments",
                        "Freeze releases while safety investigations complete.",
                        (_score(ScoreKey.SAFETY, 7), _resource(ResourceKey.CAPITAL, -6))),
        ),
    ),
    EventDefinition(
        id="breakthrough_rumor",
        title="Breakthrough Rumor",
        description="Leaked hints suggest a rival is close to a major capability jump.",
        weight=1.0,
        choices=(
            EventChoice("accelerate_training", "Accelerate training",
                        "Push compute to match the rumored surge.",
                        (_resource(ResourceKey.COMPUTE, -4), _score(ScoreKey.CAPABILITY, 6),
                         _score(ScoreKey.SAFETY, -3))),
            EventChoice("joint_review", "Joint safety review",
                        "Invite external safety teams to assess the risk.",
                        (_score(ScoreKey.SAFETY, 5), _resource(ResourceKey.TRUST, 3),
                         _score(ScoreKey.CAPABILITY, -2))),
            EventChoice("ignore_rumor", "Ignore the rumor",
                        "Stay the course and avoid overreaction.",
                        (_resource(ResourceKey.CAPITAL, 2),)),
        ),
    ),
    EventDefinition(
        id="funding_surge",
        title="Funding Surge",
        description="A wave of capital looks for returns in frontier AI.",
        weight=0.9,
        choices=(
            EventChoice("invest_compute", "Expand compute",
                        "Allocate new funding to infrastructure buildout.",
                        (_resource(ResourceKey.CAPITAL, 6), _resource(ResourceKey.COMPUTE, 8))),
            EventChoice("hire_safety", "Hire safety team",
                        "Use the capital to expand alignment headcount.",
                        (_resource(ResourceKey.TALENT, 5), _score(ScoreKey.SAFETY, 4))),
            EventChoice("policy_push", "Policy push",
                        "Route funding into lobbying and standards influence.",
                        (_resource(ResourceKey.INFLUENCE, 6), _resource(ResourceKey.TRUST, 2))),
        ),
    ),
    EventDefinition(
        id="global_summit",
        title="Global Safety Summit",
        description="Governments propose a binding summit to slow capability races.",
        weight=1.0,
        min_turn=4,
        choices=(
            EventChoice("sign_pact", "Sign the pact",
                        "Commit to mutual inspections and safety standards.",
                        (EventEffect(GlobalSafetyEffect(delta=4)), _score(ScoreKey.SAFETY, 4),
                         _score(ScoreKey.CAPABILITY, -2))),
            EventChoice("no_commitment", "No commitment",
                        "Avoid binding rules and keep options open.",
                        (_resource(ResourceKey.INFLUENCE, -2), _score(ScoreKey.CAPABILITY, 2))),
            EventChoice("demand_audits", "Demand audits",
                        "Push for enforceable audits before agreeing.",
                        (_resource(ResourceKey.TRUST, 3), _resource(ResourceKey.INFLUENCE, 2))),
        ),
    ),
    EventDefinition(
        id="talent_exodus",
        title="Talent Exodus",
        description="Senior researchers resign over the pace of deployment, and the story spreads industry-wide.",
        weight=0.8,
        min_turn=8,
        choices=(
            EventChoice("raise_pay", "Raise compensation",
                        "Match competing offers to keep the team together.",
                        (_resource(ResourceKey.CAPITAL, -8), _resource(ResourceKey.TALENT, 4))),
            EventChoice("commit_to_safety", "Commit to safety",
                        "Publicly slow down and give the safety team a veto.",
                        (_score(ScoreKey.SAFETY, 5), _score(ScoreKey.CAPABILITY, -3),
                         _resource(ResourceKey.TRUST, 2))),
            EventChoice("industry_wide_slowdown", "Call for an industry slowdown",
                        "Ask every lab to pause frontier training runs.",
                        (_score(ScoreKey.CAPABILITY, -2, EffectTarget.ALL_LABS),
                         EventEffect(GlobalSafetyEffect(delta=2)))),
        ),
    ),
)
