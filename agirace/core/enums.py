"""Enumerations shared by the state model, the engine and the wire format.

All enums are str-valued so they serialize to plain JSON strings.
"""
from enum import Enum


class FactionType(str, Enum):
    LAB = "lab"
    GOVERNMENT = "government"


class Openness(str, Enum):
    """Whether an action is declared publicly or concealed."""
    OPEN = "open"
    SECRET = "secret"


class Branch(str, Enum):
    """Research branches, each with its own accumulated research points."""
    CAPABILITIES = "capabilities"
    SAFETY = "safety"
    OPS = "ops"
    POLICY = "policy"


class ResourceKey(str, Enum):
    COMPUTE = "compute"
    TALENT = "talent"
    CAPITAL = "capital"
    DATA = "data"
    INFLUENCE = "influence"
    TRUST = "trust"


class ScoreKey(str, Enum):
    CAPABILITY = "capability_score"
    SAFETY = "safety_score"


class StatKey(str, Enum):
    SAFETY_CULTURE = "safety_culture"
    OPSEC = "opsec"


class Outcome(str, Enum):
    """Terminal classifications of a game. Exactly one applies once the game is over."""
    SAFE_AGI = "safe_agi"
    CATASTROPHE = "catastrophe"
    DOMINANT = "dominant"
    PUBLIC_TRUST = "public_trust"
    ALLIANCE = "alliance"
    CONTROL = "control"
    REGULATORY = "regulatory"
    OBSOLESCENCE = "obsolescence"
    COLLAPSE = "collapse"
    COUP = "coup"
    STALEMATE = "stalemate"

    @property
    def is_loss(self) -> bool:
        return self in (Outcome.OBSOLESCENCE, Outcome.COLLAPSE, Outcome.COUP)
