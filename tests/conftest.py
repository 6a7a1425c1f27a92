"""
Pytest configuration and shared fixtures for ctxroute tests.
"""

import random
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests"""
    return random.Random(42)


@pytest.fixture
def np_rng():
    """Seeded numpy generator for trace generation"""
    return np.random.default_rng(42)


# Config fixtures

@pytest.fixture
def router_config():
    from ctxroute.core.config import RouterConfig
    return RouterConfig()


@pytest.fixture
def social_config():
    from ctxroute.core.config import SocialConfig
    return SocialConfig()


# Core structure fixtures

@pytest.fixture
def qtable():
    """Empty value table owned by node 'A'"""
    from ctxroute.core.qtable import QTable
    return QTable("A")


@pytest.fixture
def strategy(qtable):
    from ctxroute.core.strategies import QTableUpdateStrategy
    return QTableUpdateStrategy(qtable)


@pytest.fixture
def ens():
    """Empty encountered-node set owned by node 'A'"""
    from ctxroute.p2p.neighbor_manager import EncounteredNodeSet
    return EncounteredNodeSet("A")


@pytest.fixture
def make_ens():
    """Factory: ENS for an owner, pre-filled with peers met at time t"""
    from ctxroute.p2p.neighbor_manager import EncounteredNodeSet

    def _make(owner, peers=(), t=0.0):
        s = EncounteredNodeSet(owner)
        for p in peers:
            s.record_encounter(owner, p, t, 100.0, 1024.0, 0.0)
        return s
    return _make


@pytest.fixture
def ledger():
    from ctxroute.p2p.connections import ConnectionLedger
    return ConnectionLedger()


@pytest.fixture
def crisp():
    from ctxroute.core.crisp import CrispContext
    return CrispContext()


@pytest.fixture
def context(router_config):
    from ctxroute.agents.router import RoutingContext
    return RoutingContext(router_config)


@pytest.fixture
def make_router(context):
    """Factory: router registered in the shared context"""
    from ctxroute.agents.router import ContextAwareRouter

    def _make(node_id, **kw):
        kw.setdefault("rng", random.Random(node_id))
        return ContextAwareRouter(node_id, context, **kw)
    return _make
