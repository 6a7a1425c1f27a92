# ctxroute/core/social.py
from __future__ import annotations
import math
from typing import Dict, Tuple

from ctxroute.core.config import SocialConfig
from ctxroute.p2p.connections import ConnectionLedger
from ctxroute.p2p.neighbor_manager import EncounteredNodeSet


def _normalize(value: float, cap: float) -> float:
    return min(value / cap, 1.0)


class Popularity:
    """
    Social activity of a node: exponentially smoothed count of encounters
    inside a sliding window, normalized to [0, 1].
    """
    def __init__(self, cfg: SocialConfig | None = None):
        self.cfg = cfg or SocialConfig()
        self.scores: Dict[str, float] = {}

    def update(self, node_id: str, ens: EncounteredNodeSet, now: float) -> float:
        recent = ens.count_recent_encounters(now, self.cfg.popularity_window)
        normalized = _normalize(recent, self.cfg.popularity_threshold)
        a = self.cfg.alpha_popularity
        updated = (1.0 - a) * self.scores.get(node_id, 0.0) + a * normalized
        self.scores[node_id] = updated
        return updated

    def get(self, node_id: str) -> float:
        return self.scores.get(node_id, 0.0)


class TieStrength:
    """
    Closeness of an ordered node pair from encounter frequency, cumulative
    connection time and recency of the last disconnect.
    """
    def __init__(self, cfg: SocialConfig | None = None):
        self.cfg = cfg or SocialConfig()
        self.scores: Dict[Tuple[str, str], float] = {}

    def score(self, host_id: str, neighbor_id: str, ens: EncounteredNodeSet,
              ledger: ConnectionLedger, now: float) -> float:
        c = self.cfg
        freq = ens.frequency_between(host_id, neighbor_id, now, c.frequency_window)
        closeness = ledger.duration(host_id, neighbor_id, now)
        recency = ledger.recency(host_id, neighbor_id, now)

        base = c.frequency_weight * _normalize(freq, c.max_frequency) \
            + c.closeness_weight * _normalize(closeness, c.max_closeness)
        decay = math.exp(-recency / c.recency_scale)   # exp(-inf) == 0.0
        return max(0.0, min(base * (1.0 + c.recency_factor * decay), 1.0))

    def calculate(self, host_id: str, neighbor_id: str, ens: EncounteredNodeSet,
                  ledger: ConnectionLedger, now: float) -> float:
        s = self.score(host_id, neighbor_id, ens, ledger, now)
        self.scores[(host_id, neighbor_id)] = s
        return s

    def get(self, host_id: str, neighbor_id: str) -> float:
        return self.scores.get((host_id, neighbor_id), 0.0)
