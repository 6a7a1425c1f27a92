# ctxroute/core/density.py
from __future__ import annotations
import random
from typing import Optional

from ctxroute.core.config import DensityConfig
from ctxroute.p2p.neighbor_manager import EncounteredNodeSet


def compute_density(total_nodes: int, host_ens: Optional[EncounteredNodeSet],
                    neighbor_ens: Optional[EncounteredNodeSet], host_id: str | None,
                    neighbor_id: str | None, now: float) -> float:
    """Fraction of the network host and neighbor have jointly seen recently."""
    if total_nodes <= 0:
        return 0.0
    seen = set()
    for ens in (host_ens, neighbor_ens):
        if ens is not None:
            ens.remove_old_encounters(now)
            seen |= ens.node_ids()
    for nid in (host_id, neighbor_id):
        if nid:
            seen.add(nid)
    return len(seen) / total_nodes


def copies_for_density(density: float, cfg: DensityConfig | None = None,
                       rng: random.Random | None = None) -> int:
    """Sparse areas get more copies; the count is drawn uniformly inside the band."""
    cfg = cfg or DensityConfig()
    rng = rng or random
    if density > cfg.dense_above:
        base, span = cfg.dense_copies
    elif density > cfg.medium_above:
        base, span = cfg.medium_copies
    else:
        base, span = cfg.sparse_copies
    return base + rng.randrange(span)
