# ctxroute/p2p/connections.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ctxroute.p2p.neighbor_manager import EncounteredNodeSet


@dataclass
class ConnectionDuration:
    from_id: str
    to_id: str
    start_time: float
    end_time: Optional[float] = None   # None while the link is up
    total_duration: float = 0.0
    last_end: Optional[float] = None   # kept across reconnects

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def duration(self, now: float) -> float:
        if self.end_time is None:
            return self.total_duration + (now - self.start_time)
        return self.total_duration


class ConnectionLedger:
    """
    Lifetime and cumulative duration of (from, to) connections.
    Owned by a RoutingContext; one instance per simulated network.
    """
    def __init__(self):
        self.history: Dict[str, Dict[str, ConnectionDuration]] = {}

    def start(self, from_id: str, to_id: str, now: float) -> ConnectionDuration:
        per_host = self.history.setdefault(from_id, {})
        conn = per_host.get(to_id)
        if conn is None:
            conn = ConnectionDuration(from_id, to_id, start_time=now)
            per_host[to_id] = conn
        else:
            conn.start_time = now
            conn.end_time = None
        return conn

    def end(self, from_id: str, to_id: str, now: float,
            ens: EncounteredNodeSet | None = None) -> Optional[ConnectionDuration]:
        """Close the open session; None when there was no open session to close."""
        conn = self.get(from_id, to_id)
        if conn is None or not conn.is_active:
            return None
        conn.end_time = now
        conn.last_end = now
        session = now - conn.start_time
        conn.total_duration += session
        if ens is not None:
            ens.update_connection_duration(from_id, int(session))
            ens.update_connection_duration(to_id, int(session))
        return conn

    def get(self, from_id: str, to_id: str) -> Optional[ConnectionDuration]:
        return self.history.get(from_id, {}).get(to_id)

    def connections_from(self, from_id: str) -> List[ConnectionDuration]:
        return list(self.history.get(from_id, {}).values())

    def duration(self, from_id: str, to_id: str, now: float) -> float:
        conn = self.get(from_id, to_id)
        return conn.duration(now) if conn else 0.0

    def recency(self, from_id: str, to_id: str, now: float) -> float:
        """Time since the last disconnect, reconnects included; inf if the pair never parted."""
        conn = self.get(from_id, to_id)
        if conn is None or conn.last_end is None:
            return math.inf
        return now - conn.last_end

    def remove(self, from_id: str, to_id: str):
        per_host = self.history.get(from_id)
        if per_host is None:
            return
        per_host.pop(to_id, None)
        if not per_host:
            self.history.pop(from_id, None)
