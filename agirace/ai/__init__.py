"""Rule-based decision makers for non-player factions."""
from agirace.ai.heuristic import choose_event_choice, decide_actions

__all__ = ["choose_event_choice", "decide_actions"]
