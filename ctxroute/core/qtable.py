# ctxroute/core/qtable.py
from __future__ import annotations
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ctxroute.core.config import LearningConfig

EXPORT_COL_WIDTH = 12
RENDER_COL_WIDTH = 10


class QTable:
    """
    Per-node value table: destination -> next hop -> value in [0, 1].

    A missing (destination, next hop) pair reads as 0.0. Values are only
    clamped from above; the aging strategy is what enforces a floor.
    """
    def __init__(self, owner_id: str, cfg: LearningConfig | None = None):
        self.owner_id = owner_id
        self.cfg = cfg or LearningConfig()
        self.table: Dict[str, Dict[str, float]] = {}

    # ---------- init ----------
    def initialize_all(self, node_ids: Iterable[str]):
        ids = [nid for nid in node_ids if nid != self.owner_id]
        for dest in ids:
            for hop in ids:
                self.set(dest, hop, 0.0)

    # ---------- accessors ----------
    def get(self, destination: str, next_hop: str) -> float:
        actions = self.table.get(destination)
        if actions is None:
            return 0.0
        return actions.get(next_hop, 0.0)

    def set(self, destination: str, next_hop: str, value: float):
        self.table.setdefault(destination, {})[next_hop] = min(float(value), self.cfg.q_max)

    def has_action(self, destination: str, next_hop: str) -> bool:
        return next_hop in self.table.get(destination, {})

    def destinations(self) -> List[str]:
        return list(self.table)

    def action_map(self, destination: str) -> Optional[Dict[str, float]]:
        actions = self.table.get(destination)
        return dict(actions) if actions is not None else None

    def next_hops(self) -> List[str]:
        hops = set()
        for actions in self.table.values():
            hops.update(actions)
        return sorted(hops)

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {dest: dict(actions) for dest, actions in self.table.items()}

    def max_over(self, destination: str, candidates: Iterable[str]) -> float:
        """Best value toward destination among candidates; 0.0 when there are none."""
        best = None
        for hop in candidates:
            q = self.get(destination, hop)
            if best is None or q > best:
                best = q
        return 0.0 if best is None else best

    # ---------- inspection ----------
    def to_frame(self) -> pd.DataFrame:
        """Pivot view: one row per destination, one column per next hop, sorted."""
        hops = self.next_hops()
        rows = sorted(self.table)
        data = [[self.table[dest].get(hop, 0.0) for hop in hops] for dest in rows]
        return pd.DataFrame(data, index=rows, columns=hops, dtype=float)

    def render(self) -> str:
        frame = self.to_frame()
        w = RENDER_COL_WIDTH
        out = [f"{'Qtab Nd' + self.owner_id:<{w}}" + "".join(f"{'Act ' + h:>{w}}" for h in frame.columns)]
        for dest, row in frame.iterrows():
            out.append(f"{'State' + dest:<{w}}" + "".join(f"{q:{w}.4f}" for q in row))
        return "\n".join(out)

    def export(self, path: str, append: bool = False):
        """
        Write the pivot table as fixed-width text. Raises OSError if the
        destination can't be written; the table itself is never touched.
        """
        frame = self.to_frame()
        w = EXPORT_COL_WIDTH
        lines = [f"{'Qtab nd ' + self.owner_id:<{w}}" + "".join(f"{'Action ' + h:<{w}}" for h in frame.columns)]
        for dest, row in frame.iterrows():
            lines.append(f"{'State ' + dest:<{w}}" + "".join(f"{f'{q:.4f}':<{w}}" for q in row))
        text = "\n".join(lines) + "\n\n"
        with open(path, "a" if append else "w", newline="") as f:
            f.write(text)

    def __repr__(self) -> str:
        return f"QTable(owner={self.owner_id!r}, destinations={len(self.table)})"
