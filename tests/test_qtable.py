"""
Unit tests for ctxroute/core/qtable.py
"""

import pytest

from ctxroute.core.qtable import QTable


class TestQTableAccess:
    """get / set / max_over"""

    def test_unset_pair_reads_zero(self, qtable):
        assert qtable.get("D", "B") == 0.0
        qtable.set("D", "B", 0.3)
        assert qtable.get("D", "C") == 0.0
        assert qtable.get("E", "B") == 0.0

    def test_set_clamps_above_one(self, qtable):
        qtable.set("D", "B", 1.5)
        assert qtable.get("D", "B") == 1.0

    def test_set_keeps_values_below_one(self, qtable):
        qtable.set("D", "B", 0.42)
        assert qtable.get("D", "B") == 0.42

    def test_no_lower_clamp(self, qtable):
        qtable.set("D", "B", -0.2)
        assert qtable.get("D", "B") == -0.2

    def test_max_over_candidates(self, qtable):
        qtable.set("D", "B", 0.2)
        qtable.set("D", "C", 0.7)
        qtable.set("D", "E", 0.9)
        assert qtable.max_over("D", {"B", "C"}) == 0.7

    def test_max_over_empty_or_unset(self, qtable):
        assert qtable.max_over("D", set()) == 0.0
        assert qtable.max_over("D", {"X", "Y"}) == 0.0

    def test_has_action_and_destinations(self, qtable):
        qtable.set("D", "B", 0.0)
        assert qtable.has_action("D", "B")
        assert not qtable.has_action("D", "C")
        assert qtable.destinations() == ["D"]

    def test_action_map_is_a_copy(self, qtable):
        qtable.set("D", "B", 0.5)
        m = qtable.action_map("D")
        m["B"] = 0.9
        assert qtable.get("D", "B") == 0.5
        assert qtable.action_map("nope") is None

    def test_initialize_all_skips_owner(self, qtable):
        qtable.initialize_all(["A", "B", "C"])
        assert sorted(qtable.destinations()) == ["B", "C"]
        assert qtable.next_hops() == ["B", "C"]
        assert qtable.has_action("B", "C")
        assert not qtable.has_action("B", "A")


class TestQTableExport:
    """Pivot-table export"""

    def test_export_format(self, tmp_path):
        t = QTable("1")
        t.set("2", "3", 0.5)
        t.set("4", "2", 1.0)
        path = tmp_path / "q.txt"
        t.export(str(path))

        lines = path.read_text().split("\n")
        assert lines[0] == "Qtab nd 1".ljust(12) + "Action 2".ljust(12) + "Action 3".ljust(12)
        assert lines[1] == "State 2".ljust(12) + "0.0000".ljust(12) + "0.5000".ljust(12)
        assert lines[2] == "State 4".ljust(12) + "1.0000".ljust(12) + "0.0000".ljust(12)
        assert lines[3] == ""
        assert path.read_text().endswith("\n\n")

    def test_export_truncate_and_append(self, tmp_path):
        t = QTable("1")
        t.set("2", "2", 0.25)
        path = tmp_path / "q.txt"
        t.export(str(path))
        t.export(str(path))
        once = path.read_text()
        t.export(str(path), append=True)
        assert path.read_text() == once * 2

    def test_export_failure_leaves_table_untouched(self, tmp_path):
        t = QTable("1")
        t.set("2", "3", 0.5)
        before = t.as_dict()
        with pytest.raises(OSError):
            t.export(str(tmp_path / "missing" / "q.txt"))
        assert t.as_dict() == before

    def test_export_empty_table(self, tmp_path):
        path = tmp_path / "q.txt"
        QTable("9").export(str(path))
        assert path.read_text() == "Qtab nd 9".ljust(12) + "\n\n"

    def test_render(self):
        t = QTable("1")
        t.set("2", "3", 0.5)
        out = t.render().splitlines()
        assert out[0].startswith("Qtab Nd1")
        assert "Act 3" in out[0]
        assert out[1].startswith("State2")
        assert out[1].endswith("0.5000")
