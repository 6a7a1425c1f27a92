# ctxroute/core/strategies.py
from __future__ import annotations
from typing import Dict, List, Optional

from ctxroute.core.config import LearningConfig, AgingConfig
from ctxroute.core.qtable import QTable
from ctxroute.p2p.connections import ConnectionLedger
from ctxroute.p2p.neighbor_manager import EncounteredNodeSet


class QTableUpdateStrategy:
    """
    The three ways a node's Q-table changes:
      1. live update while a link is up (temporal-difference rule)
      2. aging of a next hop after it has been gone for a while
      3. two-way synchronization with the table of a node we meet
    """
    def __init__(self, qtable: QTable, learning: LearningConfig | None = None,
                 aging: AgingConfig | None = None):
        self.qtable = qtable
        self.learning = learning or LearningConfig()
        self.aging = aging or AgingConfig()

    # ---------- strategy 1 ----------
    @staticmethod
    def reward(neighbor_ens: EncounteredNodeSet, destination: str) -> float:
        return 1.0 if destination in neighbor_ens else 0.0

    def update_live(self, neighbor_ens: EncounteredNodeSet, destination: str,
                    next_hop: str, opportunity: float) -> float:
        alpha, gamma = self.learning.alpha, self.learning.gamma
        q_old = self.qtable.get(destination, next_hop)
        r = self.reward(neighbor_ens, destination)
        max_q = self.qtable.max_over(destination, neighbor_ens.node_ids())
        q_new = alpha * (r + gamma * opportunity * max_q) + (1.0 - alpha) * q_old
        self.qtable.set(destination, next_hop, q_new)
        return self.qtable.get(destination, next_hop)

    # ---------- strategy 2 ----------
    def aged_value(self, q: float, elapsed: float) -> float:
        return max(q * (self.aging.decay ** elapsed), self.aging.floor)

    def update_aging(self, ledger: ConnectionLedger, host_id: str, neighbor_id: str,
                     now: float) -> bool:
        """Decay every value routed via neighbor_id. False if aging didn't fire."""
        conn = ledger.get(host_id, neighbor_id)
        if conn is None or conn.end_time is None:
            return False
        elapsed = now - conn.end_time
        if elapsed < self.aging.min_elapsed:
            return False

        updated = False
        for dest in self.qtable.destinations():
            if not self.qtable.has_action(dest, neighbor_id):
                continue
            self.qtable.set(dest, neighbor_id, self.aged_value(self.qtable.get(dest, neighbor_id), elapsed))
            updated = True
        return updated

    # ---------- strategy 3 ----------
    @staticmethod
    def sync_one_way(target: QTable, source: QTable) -> int:
        changed = 0
        for dest in source.destinations():
            if dest == target.owner_id:
                continue
            source_actions = source.action_map(dest)
            if source_actions is None:
                continue
            for hop, source_q in source_actions.items():
                if hop == target.owner_id or not target.has_action(dest, hop):
                    continue
                target_q = target.get(dest, hop)
                # 0.0 means "unknown" on either side
                if target_q == 0.0 or source_q == 0.0:
                    continue
                if target_q < source_q:
                    target.set(dest, hop, source_q)
                    changed += 1
                elif target_q > source_q:
                    source.set(dest, hop, target_q)
                    changed += 1
        return changed

    @classmethod
    def synchronize(cls, table_a: QTable, table_b: QTable,
                    id_a: str | None = None, id_b: str | None = None) -> int:
        """Two one-way passes, each iterating only the source's destinations."""
        return cls.sync_one_way(table_a, table_b) + cls.sync_one_way(table_b, table_a)


class AgingScheduler:
    """Neighbors waiting to be aged: neighbor id -> time the link went down."""
    def __init__(self, strategy: QTableUpdateStrategy, ledger: ConnectionLedger, host_id: str):
        self.strategy = strategy
        self.ledger = ledger
        self.host_id = host_id
        self.pending: Dict[str, float] = {}

    def schedule(self, neighbor_id: str, end_time: float):
        self.pending[neighbor_id] = end_time

    def cancel(self, neighbor_id: str):
        self.pending.pop(neighbor_id, None)

    def process(self, now: float, pending: Optional[Dict[str, float]] = None) -> List[str]:
        """
        Age every pending neighbor past the threshold; returns the ids whose
        values decayed. Each disconnection is aged at most once, so a due
        entry leaves the pending map even when it had nothing to decay.
        """
        pending = self.pending if pending is None else pending
        aged: List[str] = []
        for neighbor_id, end_time in list(pending.items()):
            if now - end_time < self.strategy.aging.min_elapsed:
                continue
            del pending[neighbor_id]
            if self.strategy.update_aging(self.ledger, self.host_id, neighbor_id, now):
                aged.append(neighbor_id)
        return aged
