# ctxroute/p2p/neighbor_manager.py
from __future__ import annotations
import copy
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple, Optional

from ctxroute.core.config import EnsConfig


@dataclass
class EncounteredNode:
    id: str
    encounter_time: float = 0.0
    remaining_energy: float = 0.0
    buffer_size: float = 0.0
    connection_duration: float = 0.0
    popularity: float = 0.0
    encounter_count: int = 0

    def relevance(self) -> Tuple[float, float, float, float]:
        """Ordering key: time, then duration, then energy, then buffer."""
        return (self.encounter_time, self.connection_duration,
                self.remaining_energy, self.buffer_size)

    def is_more_relevant_than(self, other: "EncounteredNode") -> bool:
        return self.relevance() > other.relevance()

    def is_expired(self, now: float, ttl: float) -> bool:
        return (now - self.encounter_time) > ttl

    def add_connection_duration(self, duration: float):
        self.connection_duration += duration

    def clone(self) -> "EncounteredNode":
        return copy.copy(self)


class EncounteredNodeSet:
    """
    Per-node history of peers ever met (ENS).

    Records are keyed by peer id and never by the owner. A separate
    pairwise history keeps raw encounter timestamps per unordered pair and
    only serves frequency-in-window queries.
    """
    def __init__(self, owner_id: str, cfg: EnsConfig | None = None):
        self.owner_id = owner_id
        self.cfg = cfg or EnsConfig()
        self.members: Dict[str, EncounteredNode] = {}
        self.pairwise: Dict[Tuple[str, str], List[float]] = {}

    # ---------- insert / update ----------
    def record_encounter(self, self_id: str, node_id: str, encounter_time: float,
                         remaining_energy: float, buffer_size: float,
                         connection_duration: float, popularity: float = 0.0):
        if node_id == self_id or node_id == self.owner_id:
            return
        incoming = EncounteredNode(node_id, encounter_time, remaining_energy,
                                   buffer_size, connection_duration, popularity)
        existing = self.members.get(node_id)
        if existing is None:
            incoming.encounter_count = 1
            self.members[node_id] = incoming
            return

        existing.encounter_count += 1
        existing.encounter_time = incoming.encounter_time
        existing.popularity = incoming.popularity
        # time is already equal here, so duration/energy/buffer decide
        if incoming.is_more_relevant_than(existing):
            existing.remaining_energy = incoming.remaining_energy
            existing.buffer_size = incoming.buffer_size
            existing.connection_duration = incoming.connection_duration

    def update_connection_duration(self, node_id: str, duration: float):
        node = self.members.get(node_id)
        if node is not None:
            node.add_connection_duration(duration)

    # ---------- merge & exchange ----------
    def merge(self, other: Optional["EncounteredNodeSet"]):
        """Take the more relevant record for every peer the other set knows."""
        if other is None or other.is_empty():
            return
        for node_id, theirs in other.members.items():
            if node_id == self.owner_id:
                continue
            mine = self.members.get(node_id)
            if mine is None or theirs.is_more_relevant_than(mine):
                self.members[node_id] = theirs.clone()

    def exchange_with(self, peer_ens: Optional["EncounteredNodeSet"], peer_id: str):
        """Merge a snapshot of the peer's set minus the peer's record about itself."""
        if peer_ens is None:
            return
        snapshot = peer_ens.clone()
        snapshot.remove_encounter(peer_id)
        self.merge(snapshot)

    # ---------- removal ----------
    def remove_encounter(self, node_id: str):
        self.members.pop(node_id, None)

    def remove_old_encounters(self, now: float) -> List[str]:
        """Drop records older than the TTL. Returns the removed ids."""
        removed: List[str] = []
        for node_id, node in list(self.members.items()):
            if node.is_expired(now, self.cfg.ttl):
                self.members.pop(node_id, None)
                removed.append(node_id)
        return removed

    # ---------- queries ----------
    def is_empty(self) -> bool:
        return not self.members

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.members

    def get(self, node_id: str) -> Optional[EncounteredNode]:
        return self.members.get(node_id)

    def node_ids(self) -> Set[str]:
        return set(self.members)

    def count_recent_encounters(self, now: float, window: float) -> int:
        return sum(1 for node in self.members.values() if (now - node.encounter_time) <= window)

    def clone(self) -> "EncounteredNodeSet":
        cloned = EncounteredNodeSet(self.owner_id, self.cfg)
        cloned.members = {nid: node.clone() for nid, node in self.members.items()}
        cloned.pairwise = {pair: list(ts) for pair, ts in self.pairwise.items()}
        return cloned

    # ---------- encounter frequency ----------
    @staticmethod
    def _pair(a: str, b: str) -> Tuple[str, str]:
        return (a, b) if a <= b else (b, a)

    def record_encounter_between(self, a: str, b: str, now: float):
        self.pairwise.setdefault(self._pair(a, b), []).append(now)

    def frequency_between(self, a: str, b: str, now: float, window: float) -> int:
        times = self.pairwise.get(self._pair(a, b), [])
        return sum(1 for t in times if (now - t) <= window)

    # ---------- debug ----------
    def describe(self) -> str:
        if not self.members:
            return "  (empty ENS)"
        lines = []
        for node in self.members.values():
            lines.append(
                f"  NodeID: {node.id:<5} | Encounter: {node.encounter_time:<7.1f} | "
                f"Energy: {node.remaining_energy:<5.1f} | Buffer: {node.buffer_size:<8.0f} | "
                f"Duration: {node.connection_duration:<5.0f}s | Count: {node.encounter_count}"
            )
        return "\n".join(lines)
