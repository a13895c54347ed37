"""Action definitions: who may take each action and what it costs or yields."""
from enum import Enum
from typing import Dict, FrozenSet, Mapping

import attrs

from agirace.core.enums import Branch, FactionType, ResourceKey


class ActionKind(str, Enum):
    """Types of actions factions can take."""
    RESEARCH_CAPABILITIES = "research_capabilities"
    RESEARCH_SAFETY = "research_safety"
    BUILD_COMPUTE = "build_compute"
    DEPLOY_PRODUCTS = "deploy_products"
    DEPLOY_AGI = "deploy_agi"
    POLICY = "policy"
    ESPIONAGE = "espionage"
    SUBSIDIZE = "subsidize"
    REGULATE = "regulate"
    COUNTERINTEL = "counterintel"


LABS_ONLY = frozenset({FactionType.LAB})
GOVERNMENTS_ONLY = frozenset({FactionType.GOVERNMENT})
EVERYONE = frozenset({FactionType.LAB, FactionType.GOVERNMENT})


@attrs.frozen
class ActionDefinition:
    """Static description of an action.

    `base_research` is the nominal research gain per branch before resource
    terms and the openness multiplier. `base_resource_delta` is applied to the
    acting faction. `exposure` is added to the actor when the action is secret.
    """
    id: str
    name: str
    kind: ActionKind
    allowed_for: FrozenSet[FactionType]
    base_research: Mapping[Branch, float] = attrs.field(factory=dict)
    base_resource_delta: Mapping[ResourceKey, float] = attrs.field(factory=dict)
    exposure: float = 0.0
    requires_target: bool = False
    description: str = ""

    def is_allowed(self, faction_type: FactionType) -> bool:
        return faction_type in self.allowed_for


ACTIONS = (
    ActionDefinition(
        id="research_capabilities",
        name="Capabilities Research",
        kind=ActionKind.RESEARCH_CAPABILITIES,
        allowed_for=LABS_ONLY,
        base_research={Branch.CAPABILITIES: 12.0},
        exposure=1.0,
        description="Push frontier model capabilities.",
    ),
    ActionDefinition(
        id="research_safety",
        name="Safety Research",
        kind=ActionKind.RESEARCH_SAFETY,
        allowed_for=EVERYONE,
        base_research={Branch.SAFETY: 12.0},
        exposure=1.0,
        description="Alignment, interpretability and evaluation work.",
    ),
    ActionDefinition(
        id="build_compute",
        name="Build Compute",
        kind=ActionKind.BUILD_COMPUTE,
        allowed_for=LABS_ONLY,
        base_resource_delta={ResourceKey.CAPITAL: -10.0, ResourceKey.COMPUTE: 8.0},
        description="Turn capital into datacenter capacity.",
    ),
    ActionDefinition(
        id="deploy_products",
        name="Deploy Products",
        kind=ActionKind.DEPLOY_PRODUCTS,
        allowed_for=LABS_ONLY,
        base_resource_delta={ResourceKey.CAPITAL: 12.0, ResourceKey.TRUST: 2.0},
        description="Ship commercial products for revenue and goodwill.",
    ),
    ActionDefinition(
        id="deploy_agi",
        name="Deploy AGI",
        kind=ActionKind.DEPLOY_AGI,
        allowed_for=LABS_ONLY,
        description="Release a general system. Ends the game one way or the other.",
    ),
    ActionDefinition(
        id="policy",
        name="Policy & Diplomacy",
        kind=ActionKind.POLICY,
        allowed_for=EVERYONE,
        base_research={Branch.POLICY: 10.0},
        base_resource_delta={ResourceKey.INFLUENCE: 3.0, ResourceKey.TRUST: 1.0},
        description="Lobbying, standards bodies and diplomacy.",
    ),
    ActionDefinition(
        id="espionage",
        name="Espionage",
        kind=ActionKind.ESPIONAGE,
        allowed_for=EVERYONE,
        exposure=2.0,
        requires_target=True,
        description="Attempt to copy a rival's capabilities research. Always secret.",
    ),
    ActionDefinition(
        id="subsidize",
        name="Subsidize Lab",
        kind=ActionKind.SUBSIDIZE,
        allowed_for=GOVERNMENTS_ONLY,
        base_resource_delta={ResourceKey.CAPITAL: -8.0},
        requires_target=True,
        description="Fund an allied lab.",
    ),
    ActionDefinition(
        id="regulate",
        name="Regulate",
        kind=ActionKind.REGULATE,
        allowed_for=GOVERNMENTS_ONLY,
        requires_target=True,
        description="Impose restrictions on a rival lab.",
    ),
    ActionDefinition(
        id="counterintel",
        name="Counterintelligence",
        kind=ActionKind.COUNTERINTEL,
        allowed_for=GOVERNMENTS_ONLY,
        base_resource_delta={ResourceKey.CAPITAL: -4.0},
        description="Harden operational security.",
    ),
)

ACTION_MAP: Dict[str, ActionDefinition] = {action.id: action for action in ACTIONS}


def get_action(action_id: str, actions: Mapping[str, ActionDefinition] = ACTION_MAP) -> ActionDefinition:
    """Look up an action definition. Raises KeyError for unknown ids."""
    try:
        return actions[action_id]
    except KeyError:
        raise KeyError(f"Unknown action: {action_id}") from None
