"""Starting roster: three frontier labs and two governments across two blocs."""
from agirace.core.enums import FactionType
from agirace.core.game_state import FactionTemplate, StrategyProfile

FACTION_TEMPLATES = (
    FactionTemplate(
        id="us_lab_a",
        name="OpenBrain",
        type=FactionType.LAB,
        description="Leading US lab with a strong safety culture and a public research ethos.",
        resources=dict(compute=60, talent=80, capital=60, data=60, influence=40, trust=60),
        safety_culture=80,
        opsec=55,
        capability_score=10,
        safety_score=25,
        strategy=StrategyProfile(risk_tolerance=35, safety_focus=75, openness_preference=70, espionage_focus=15),
    ),
    FactionTemplate(
        id="us_lab_b",
        name="Nexus Labs",
        type=FactionType.LAB,
        description="Aggressive, well-capitalized US competitor.",
        resources=dict(compute=80, talent=70, capital=80, data=60, influence=40, trust=55),
        safety_culture=60,
        opsec=60,
        capability_score=15,
        safety_score=20,
        strategy=StrategyProfile(risk_tolerance=55, safety_focus=45, openness_preference=45, espionage_focus=25),
    ),
    FactionTemplate(
        id="cn_lab",
        name="DeepCent",
        type=FactionType.LAB,
        description="State-aligned collective with deep data access and tight security.",
        resources=dict(compute=75, talent=60, capital=70, data=80, influence=40, trust=45),
        safety_culture=45,
        opsec=70,
        capability_score=15,
        safety_score=15,
        strategy=StrategyProfile(risk_tolerance=65, safety_focus=35, openness_preference=30, espionage_focus=45),
    ),
    FactionTemplate(
        id="us_gov",
        name="US Executive",
        type=FactionType.GOVERNMENT,
        description="Executive branch balancing national advantage against public safety.",
        resources=dict(compute=20, talent=30, capital=70, data=20, influence=90, trust=70),
        safety_culture=60,
        opsec=50,
        capability_score=0,
        safety_score=35,
        strategy=StrategyProfile(risk_tolerance=30, safety_focus=65, openness_preference=60, espionage_focus=20),
    ),
    FactionTemplate(
        id="cn_gov",
        name="PRC Executive",
        type=FactionType.GOVERNMENT,
        description="Central leadership directing national AI strategy.",
        resources=dict(compute=20, talent=30, capital=70, data=20, influence=85, trust=55),
        safety_culture=50,
        opsec=55,
        capability_score=0,
        safety_score=30,
        strategy=StrategyProfile(risk_tolerance=40, safety_focus=50, openness_preference=50, espionage_focus=30),
    ),
)
