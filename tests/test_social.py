"""
Unit tests for ctxroute/core/social.py
"""

import math

import pytest

from ctxroute.core.config import SocialConfig
from ctxroute.core.social import Popularity, TieStrength


class TestPopularity:

    def test_smoothing(self, make_ens):
        pop = Popularity(SocialConfig(alpha_popularity=0.5))
        ens = make_ens("A", peers=["B", "C", "D"], t=100.0)
        first = pop.update("A", ens, 100.0)
        assert first == pytest.approx(0.5 * 3 / 12)
        second = pop.update("A", ens, 100.0)
        assert second == pytest.approx(0.5 * first + 0.5 * 3 / 12)
        assert pop.get("A") == second

    def test_normalization_capped(self, make_ens):
        pop = Popularity(SocialConfig(alpha_popularity=1.0))
        ens = make_ens("A", peers=[str(i) for i in range(30)], t=0.0)
        assert pop.update("A", ens, 0.0) == 1.0

    def test_window(self, make_ens):
        pop = Popularity(SocialConfig(alpha_popularity=1.0))
        ens = make_ens("A", peers=["B"], t=0.0)
        assert pop.update("A", ens, 241.0) == 0.0

    def test_unknown_node(self):
        assert Popularity().get("Z") == 0.0


class TestTieStrength:

    def test_never_met_has_no_recency_bonus(self, ens, ledger):
        tie = TieStrength()
        for t in range(3):
            ens.record_encounter_between("A", "B", float(t))
        s = tie.calculate("A", "B", ens, ledger, 10.0)
        assert s == pytest.approx(0.5 * 3 / 15)
        assert tie.get("A", "B") == s
        assert tie.get("B", "A") == 0.0

    def test_weighted_sum_with_recency(self, ens, ledger):
        tie = TieStrength()
        ens.record_encounter_between("A", "B", 0.0)
        ledger.start("A", "B", 0.0)
        ledger.end("A", "B", 450.0)
        now = 500.0
        expected = (0.5 * 1 / 15 + 0.2 * 450 / 900) * (1 + 0.3 * math.exp(-50 / 1000))
        assert tie.calculate("A", "B", ens, ledger, now) == pytest.approx(expected)

    def test_clamped_to_one(self, ens, ledger):
        tie = TieStrength(SocialConfig(frequency_weight=1.0))
        for t in range(40):
            ens.record_encounter_between("A", "B", float(t))
        ledger.start("A", "B", 0.0)
        ledger.end("A", "B", 40.0)
        # base 1.0+, recency bonus x1.3 right after parting
        assert tie.calculate("A", "B", ens, ledger, 40.0) == 1.0

    def test_reconnect_gap_changes_score(self, ens, ledger):
        # same frequency and closeness at both reconnects; only the gap differs
        tie = TieStrength(SocialConfig(frequency_window=10000.0))
        ens.record_encounter_between("A", "B", 0.0)
        ledger.start("A", "B", 0.0)
        ledger.end("A", "B", 100.0)

        ledger.start("A", "B", 110.0)
        soon = tie.calculate("A", "B", ens, ledger, 110.0)
        base = 0.5 * 1 / 15 + 0.2 * 100 / 900
        assert soon == pytest.approx(base * (1 + 0.3 * math.exp(-10 / 1000)))

        ledger.end("A", "B", 110.0)
        ledger.start("A", "B", 5110.0)
        late = tie.calculate("A", "B", ens, ledger, 5110.0)
        assert late == pytest.approx(base * (1 + 0.3 * math.exp(-5000 / 1000)))
        assert late < soon

    def test_recomputation_is_idempotent(self, ens, ledger):
        tie = TieStrength()
        ens.record_encounter_between("A", "B", 0.0)
        ledger.start("A", "B", 0.0)
        ledger.end("A", "B", 100.0)
        a = tie.calculate("A", "B", ens, ledger, 200.0)
        b = tie.calculate("A", "B", ens, ledger, 200.0)
        assert a == b

    def test_bad_caps_rejected(self):
        with pytest.raises(ValueError):
            SocialConfig(max_frequency=0)
        with pytest.raises(ValueError):
            SocialConfig(popularity_threshold=0)
