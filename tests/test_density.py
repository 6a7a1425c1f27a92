"""
Unit tests for ctxroute/core/density.py
"""

import pytest

from ctxroute.core.density import compute_density, copies_for_density


class TestComputeDensity:

    def test_union_with_explicit_ids(self, make_ens):
        host = make_ens("A", peers=["B", "C"], t=0.0)
        neighbor = make_ens("B", peers=["A", "D"], t=0.0)
        # {A, B, C, D}
        assert compute_density(10, host, neighbor, "A", "B", 10.0) == pytest.approx(0.4)

    def test_stale_entries_are_expired_first(self, make_ens):
        host = make_ens("A", peers=["C"], t=0.0)
        neighbor = make_ens("B", peers=["D"], t=5000.0)
        assert compute_density(10, host, neighbor, "A", "B", 5000.0) == pytest.approx(0.3)
        assert "C" not in host

    def test_non_positive_total(self, make_ens):
        host = make_ens("A", peers=["C"])
        assert compute_density(0, host, None, "A", "B", 0.0) == 0.0
        assert compute_density(-3, host, None, "A", "B", 0.0) == 0.0

    def test_missing_sets_and_ids(self):
        assert compute_density(4, None, None, "A", None, 0.0) == 0.25
        assert compute_density(4, None, None, "", "", 0.0) == 0.0


class TestCopiesForDensity:

    @pytest.mark.parametrize("density,lo,hi", [
        (0.65, 5, 30),
        (0.45, 80, 160),
        (0.1, 250, 330),
        (0.6, 80, 160),     # strict ">" at the dense boundary
        (0.3, 250, 330),
        (1.0, 5, 30),
        (0.0, 250, 330),
    ])
    def test_ranges(self, rng, density, lo, hi):
        for _ in range(200):
            c = copies_for_density(density, rng=rng)
            assert lo <= c < hi

    def test_uses_whole_range(self, rng):
        seen = {copies_for_density(0.9, rng=rng) for _ in range(2000)}
        assert seen == set(range(5, 30))

    def test_default_rng(self):
        assert 250 <= copies_for_density(0.0) < 330
