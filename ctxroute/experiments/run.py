# ctxroute/experiments/run.py
import os, sys, yaml, random, argparse
import numpy as np
from typing import Dict, List

from ctxroute.core.config import RouterConfig
from ctxroute.core.monitor import CSVMonitor
from ctxroute.agents.router import RoutingContext, ContextAwareRouter
from ctxroute.p2p.messages import ConnectionUp, ConnectionDown, MessageSeen, EventCodec


def synthetic_trace(node_ids: List[str], steps: int, dt: float, p_up: float, p_down: float,
                    msg_rate: float, msg_ttl: float, rng: np.random.Generator) -> List[object]:
    """Random contact process: each idle pair links up with p_up per step, each link drops with p_down."""
    events: List[object] = []
    up = set()
    pairs = [(a, b) for i, a in enumerate(node_ids) for b in node_ids[i + 1:]]
    msg_no = 0
    for step in range(1, steps + 1):
        t = step * dt
        for pair in pairs:
            if pair in up:
                if rng.random() < p_down:
                    up.discard(pair)
                    events.append(ConnectionDown(t, *pair))
            elif rng.random() < p_up:
                up.add(pair)
                events.append(ConnectionUp(t, *pair))
        if up and rng.random() < msg_rate:
            live = sorted(up)
            a, b = live[int(rng.integers(len(live)))]
            holder, peer = (a, b) if rng.random() < 0.5 else (b, a)
            dest = node_ids[int(rng.integers(len(node_ids)))]
            events.append(MessageSeen(t, holder, peer, f"M{msg_no}", dest,
                                      float(rng.uniform(0.0, msg_ttl)), int(rng.integers(0, 11))))
            msg_no += 1
    return events


ROUTER_SECTIONS = ("learning", "aging", "ens", "social", "crisp", "density")


def _make_router_cfg(n: Dict, global_router: Dict | None) -> RouterConfig:
    """Per-node `router:` sections merged key by key over the global ones."""
    global_router = global_router or {}
    local = n.get('router') or {}
    merged = {k: {**(global_router.get(k) or {}), **(local.get(k) or {})} for k in ROUTER_SECTIONS}
    merged['total_nodes'] = global_router.get('total_nodes', 0)
    return RouterConfig.from_dict(merged)


def _make_router(n: Dict, ctx: RoutingContext, seed, global_router: Dict | None = None) -> ContextAwareRouter:
    rng = random.Random(None if seed is None else f"{seed}:{n['id']}")
    return ContextAwareRouter(
        str(n['id']), ctx,
        remaining_energy=float(n.get('energy', 500.0)),
        free_buffer=float(n.get('buffer', 10 * 1024 * 1024)),
        rng=rng,
        cfg=_make_router_cfg(n, global_router) if n.get('router') else None,
    )


def replay(events, routers: Dict[str, ContextAwareRouter]) -> Dict[str, int]:
    stats = {"up": 0, "down": 0, "msgs": 0, "forwarded": 0, "aged": 0}
    last_t = None
    for ev in events:
        if last_t is None or ev.t != last_t:
            for r in routers.values():
                stats["aged"] += len(r.tick(ev.t))
            last_t = ev.t
        if isinstance(ev, ConnectionUp):
            routers[ev.a].on_connection_up(ev.b, ev.t)
            routers[ev.b].on_connection_up(ev.a, ev.t)
            stats["up"] += 1
        elif isinstance(ev, ConnectionDown):
            routers[ev.a].on_connection_down(ev.b, ev.t)
            routers[ev.b].on_connection_down(ev.a, ev.t)
            stats["down"] += 1
        elif isinstance(ev, MessageSeen):
            d = routers[ev.holder].on_message(ev.message_id, ev.destination, ev.ttl,
                                              ev.hop_count, ev.peer, ev.t)
            stats["msgs"] += 1
            stats["forwarded"] += int(d.forward)
    return stats


def main(cfg_path: str, seed=None, exp=None, trace_out=None) -> Dict[str, int]:
    # ===== load yaml =====
    with open(cfg_path, 'r') as f:
        cfg = yaml.safe_load(f) or {}

    _seed = seed if seed is not None else cfg.get('seed')
    if _seed is not None:
        random.seed(_seed)
    rng = np.random.default_rng(_seed)

    _exp = exp or cfg.get('exp', 'ctxroute')
    monitor = CSVMonitor(_exp, root=cfg.get('log_root', 'logs'))

    # ===== objects from cfg =====
    rcfg = RouterConfig.from_dict(cfg.get('router'))
    ctx = RoutingContext(rcfg, monitor=monitor)
    node_specs = cfg.get('nodes') or [{'id': str(i)} for i in range(int(cfg.get('n_nodes', 10)))]
    routers = {str(n['id']): _make_router(n, ctx, _seed, cfg.get('router')) for n in node_specs}
    ids = sorted(routers)
    print(f"[runner] {len(ids)} nodes, exp={_exp}, seed={_seed}", flush=True)

    # ===== contact trace =====
    tcfg = cfg.get('trace') or {}
    if tcfg.get('path'):
        events = EventCodec.read_trace(tcfg['path'])
        print(f"[runner] loaded {len(events)} events from {tcfg['path']}", flush=True)
    else:
        events = synthetic_trace(
            ids,
            steps=int(tcfg.get('steps', 500)),
            dt=float(tcfg.get('dt', 10.0)),
            p_up=float(tcfg.get('p_up', 0.01)),
            p_down=float(tcfg.get('p_down', 0.2)),
            msg_rate=float(tcfg.get('msg_rate', 0.3)),
            msg_ttl=float(tcfg.get('msg_ttl', rcfg.crisp.max_ttl)),
            rng=rng,
        )
        print(f"[runner] generated {len(events)} synthetic events", flush=True)
    if trace_out:
        EventCodec.write_trace(trace_out, events)
        print(f"[runner] trace written to {trace_out}", flush=True)

    stats = replay(events, routers)
    print(f"[runner] done: {stats}", flush=True)

    # ===== q-table export =====
    export_path = cfg.get('export_path', os.path.join(monitor.log_dir, 'qtables.txt'))
    for i, nid in enumerate(ids):
        routers[nid].qtable.export(export_path, append=(i > 0))
    print(f"[runner] q-tables exported to {export_path}", flush=True)
    return stats


def cli(argv=None):
    ap = argparse.ArgumentParser(description="Replay a contact trace through context-aware Q routers")
    ap.add_argument('--seed', type=int, default=None)
    ap.add_argument('--exp', type=str, default=None)
    ap.add_argument('--trace-out', type=str, default=None)
    ap.add_argument('cfg', nargs='?', default=os.path.join(os.path.dirname(__file__), 'configs', 'default.yaml'))
    args = ap.parse_args(argv)
    main(args.cfg, seed=args.seed, exp=args.exp, trace_out=args.trace_out)


if __name__ == '__main__':
    sys.exit(cli())
