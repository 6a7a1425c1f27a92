# ctxroute/agents/router.py
from __future__ import annotations
import random
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ctxroute.core.config import RouterConfig
from ctxroute.core.qtable import QTable
from ctxroute.core.strategies import QTableUpdateStrategy, AgingScheduler
from ctxroute.core.social import Popularity, TieStrength
from ctxroute.core.crisp import CrispContext
from ctxroute.core.density import compute_density, copies_for_density
from ctxroute.core.monitor import CSVMonitor
from ctxroute.p2p.connections import ConnectionLedger
from ctxroute.p2p.neighbor_manager import EncounteredNodeSet
from ctxroute.p2p.messages import MessageListTable


class RoutingContext:
    """
    Shared state of one simulated network: the connection ledger, the
    tie-strength cache and the router registry. Dropping the context drops
    all of it.
    """
    def __init__(self, cfg: RouterConfig | None = None, monitor: CSVMonitor | None = None):
        self.cfg = cfg or RouterConfig()
        self.monitor = monitor
        self.ledger = ConnectionLedger()
        self.tie = TieStrength(self.cfg.social)
        self.routers: Dict[str, "ContextAwareRouter"] = {}

    def register(self, router: "ContextAwareRouter"):
        if router.id in self.routers:
            raise ValueError(f"Router '{router.id}' already registered")
        self.routers[router.id] = router

    def lookup(self, node_id: str) -> "ContextAwareRouter":
        try:
            return self.routers[node_id]
        except KeyError:
            raise KeyError(f"Unknown node '{node_id}'") from None

    @property
    def total_nodes(self) -> int:
        return self.cfg.total_nodes or len(self.routers)


@dataclass
class EncounterOutcome:
    popularity: float
    peer_popularity: float
    tie_strength: float
    neighbor_ok: int
    self_ok: int
    opportunity: float
    learned: int
    synced: int


@dataclass
class ForwardDecision:
    priority: float
    forward: bool
    density: float
    copies: int


class ContextAwareRouter:
    def __init__(self, node_id: str, context: RoutingContext,
                 remaining_energy: float = 500.0, free_buffer: float = 10 * 1024 * 1024,
                 rng: random.Random | None = None, cfg: RouterConfig | None = None):
        self.id = node_id
        self.context = context
        # per-node sections; the ledger and tie cache stay on context.cfg
        self.cfg = cfg or context.cfg
        self.remaining_energy = float(remaining_energy)
        self.free_buffer = float(free_buffer)
        self.rng = rng or random.Random()

        self.qtable = QTable(node_id, self.cfg.learning)
        self.ens = EncounteredNodeSet(node_id, self.cfg.ens)
        self.strategy = QTableUpdateStrategy(self.qtable, self.cfg.learning, self.cfg.aging)
        self.aging = AgingScheduler(self.strategy, context.ledger, node_id)
        self.popularity = Popularity(self.cfg.social)
        self.crisp = CrispContext(self.cfg.crisp)
        self.messages = MessageListTable(node_id)
        self.lock = threading.RLock()
        context.register(self)

    # ---------- helpers ----------
    @contextmanager
    def _locked_with(self, peer: "ContextAwareRouter"):
        """Both node locks, always taken in node-id order."""
        first, second = sorted((self, peer), key=lambda r: r.id)
        with first.lock, second.lock:
            yield

    def set_resources(self, remaining_energy: float | None = None, free_buffer: float | None = None):
        if remaining_energy is not None:
            self.remaining_energy = float(remaining_energy)
        if free_buffer is not None:
            self.free_buffer = float(free_buffer)

    def _log_q(self, now: float, strategy: str, dest: str, hop: str, old: float, new: float):
        if self.context.monitor is not None and old != new:
            self.context.monitor.log_qupdate(now, self.id, strategy, dest, hop, old, new)

    # ---------- events ----------
    def on_connection_up(self, peer_id: str, now: float) -> EncounterOutcome:
        peer = self.context.lookup(peer_id)
        ledger = self.context.ledger
        with self._locked_with(peer):
            ledger.start(self.id, peer.id, now)
            self.aging.cancel(peer.id)
            self.ens.record_encounter_between(self.id, peer.id, now)

            peer_pop = peer.popularity.get(peer.id)
            self.ens.record_encounter(self.id, peer.id, now, peer.remaining_energy, peer.free_buffer,
                                      ledger.duration(self.id, peer.id, now), peer_pop)
            self.ens.exchange_with(peer.ens, peer.id)
            self.ens.remove_old_encounters(now)
            my_pop = self.popularity.update(self.id, self.ens, now)

            tie = self.context.tie.calculate(self.id, peer.id, self.ens, ledger, now)
            opp = self.crisp.transfer_opportunity(peer.free_buffer, peer.remaining_energy, peer_pop, tie)
            neighbor_ok = self.crisp.transfer_binary(opp)
            self_ok = self.crisp.evaluate_self(my_pop, tie)

            learned = 0
            weight = 0.0
            if neighbor_ok:
                weight = self.crisp.opportunity_weight(opp)
                targets = (peer.ens.node_ids() | {peer.id} | set(self.qtable.destinations())) - {self.id}
                for dest in sorted(targets):
                    old = self.qtable.get(dest, peer.id)
                    new = self.strategy.update_live(peer.ens, dest, peer.id, weight)
                    self._log_q(now, "live", dest, peer.id, old, new)
                    learned += 1

            synced = QTableUpdateStrategy.synchronize(self.qtable, peer.qtable, self.id, peer.id)

        if self.context.monitor is not None:
            self.context.monitor.log_encounter(now, self.id, peer.id, my_pop, tie, neighbor_ok, self_ok)
            self.context.monitor.log_sync(now, self.id, peer.id, synced)
        return EncounterOutcome(my_pop, peer_pop, tie, neighbor_ok, self_ok, weight, learned, synced)

    def on_connection_down(self, peer_id: str, now: float):
        with self.lock:
            conn = self.context.ledger.end(self.id, peer_id, now, self.ens)
            if conn is not None:
                self.aging.schedule(peer_id, conn.end_time)

    def tick(self, now: float):
        """Run any aging that has become due. Returns the neighbor ids aged."""
        with self.lock:
            before = self.qtable.as_dict() if self.context.monitor is not None else None
            aged = self.aging.process(now)
            if before is not None:
                for hop in aged:
                    for dest, actions in before.items():
                        if hop in actions:
                            self._log_q(now, "aging", dest, hop, actions[hop], self.qtable.get(dest, hop))
        return aged

    def replica_count(self, peer_id: str, now: float) -> Tuple[float, int]:
        peer = self.context.lookup(peer_id)
        with self._locked_with(peer):
            density = compute_density(self.context.total_nodes, self.ens, peer.ens,
                                      self.id, peer.id, now)
        return density, copies_for_density(density, self.cfg.density, self.rng)

    def on_message(self, message_id: str, destination: str, ttl: float, hop_count: int,
                   peer_id: str, now: float) -> ForwardDecision:
        """
        Decide whether a carried message should go to peer_id: always when
        the peer is the destination, otherwise only to a usable neighbor that
        is urgent-enough or at least as good a hop as anything we know.
        """
        peer = self.context.lookup(peer_id)
        with self._locked_with(peer):
            priority = self.crisp.evaluate_message(ttl, hop_count)
            self.messages.update(message_id, priority)

            density, copies = self.replica_count(peer_id, now)
            if peer.id == destination:
                forward = True
            else:
                neighbor_ok = self.crisp.evaluate_neighbor(
                    peer.free_buffer, peer.remaining_energy, peer.popularity.get(peer.id),
                    self.context.tie.get(self.id, peer.id))
                q_peer = self.qtable.get(destination, peer.id)
                others = self.ens.node_ids() - {peer.id}
                best_other = self.qtable.max_over(destination, others)
                forward = bool(neighbor_ok) and (priority == 1.0 or (q_peer > 0.0 and q_peer >= best_other))

        if self.context.monitor is not None:
            self.context.monitor.log_forward(now, self.id, peer.id, message_id, destination,
                                             priority, forward, density, copies)
        return ForwardDecision(priority, forward, density, copies)

    def best_next_hop(self, destination: str) -> Optional[str]:
        actions = self.qtable.action_map(destination)
        if not actions:
            return None
        hop, q = max(actions.items(), key=lambda kv: kv[1])
        return hop if q > 0.0 else None
