"""Per-turn snapshots of every faction, collected into a pandas DataFrame."""
import logging
from typing import Dict, List

import attrs
import pandas as pd

from agirace.core.game_state import GameState

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = [
    "turn", "date", "faction_id", "faction_type",
    "compute", "talent", "capital", "data", "influence", "trust",
    "capability_score", "safety_score", "safety_culture", "opsec", "exposure",
    "techs_unlocked", "global_safety",
]


@attrs.define
class TurnHistory:
    """Records one row per faction per turn."""
    rows: List[Dict] = attrs.field(factory=list)

    def record(self, state: GameState):
        for faction in state.factions.values():
            row = {
                "turn": state.turn,
                "date": state.date_label,
                "faction_id": faction.id,
                "faction_type": faction.type.value,
                "capability_score": faction.capability_score,
                "safety_score": faction.safety_score,
                "safety_culture": faction.safety_culture,
                "opsec": faction.opsec,
                "exposure": faction.exposure,
                "techs_unlocked": len(faction.unlocked_techs),
                "global_safety": state.global_safety,
            }
            row.update(faction.resources.to_dict())
            self.rows.append(row)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=SNAPSHOT_COLUMNS)

    def metric_by_turn(self, metric: str) -> pd.DataFrame:
        """Wide table of one metric: turns as rows, factions as columns."""
        frame = self.to_frame()
        if metric not in frame.columns:
            raise KeyError(f"Unknown metric {metric!r}")
        return frame.pivot(index="turn", columns="faction_id", values=metric)

    def global_safety_series(self) -> pd.Series:
        frame = self.to_frame()
        return frame.groupby("turn")["global_safety"].first()

    def to_csv(self, path: str):
        self.to_frame().to_csv(path, index=False)
        logger.info(f"Wrote {len(self.rows)} history rows to {path}")
