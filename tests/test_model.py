"""Unit tests for the in-memory bank hierarchy.

WHY: The editor, resolver, and exporter all rely on ascending iteration
and on snapshots being fully independent of the live workspace.
"""

from __future__ import annotations

from scripted.core.model import DEFAULT_TITLE, Bank, Row, Workspace


def _bank() -> Bank:
    bank = Bank(id=1, title="Main")
    bank.set_value(2, 1, "c")
    bank.set_value(1, 16, "b")
    bank.set_value(1, 10, "a")
    return bank


class TestBank:

    def test_default_title(self):
        assert Bank(id=3).title == DEFAULT_TITLE

    def test_set_value_creates_register(self):
        bank = Bank(id=1)
        bank.set_value(5, 7, "v")
        assert 5 in bank.registers
        assert bank.get_value(5, 7) == "v"

    def test_set_value_overwrites(self):
        bank = _bank()
        bank.set_value(1, 10, "new")
        assert bank.get_value(1, 10) == "new"
        assert len(bank.rows()) == 3

    def test_get_missing(self):
        bank = _bank()
        assert bank.get_value(9, 9) is None
        assert bank.get_value(1, 9) is None

    def test_rows_are_ascending(self):
        assert _bank().rows() == [
            Row(1, 10, "a"),
            Row(1, 16, "b"),
            Row(2, 1, "c"),
        ]

    def test_remove_value(self):
        bank = _bank()
        assert bank.remove_value(1, 10) is True
        assert bank.get_value(1, 10) is None

    def test_remove_missing_returns_false(self):
        bank = _bank()
        assert bank.remove_value(1, 99) is False
        assert bank.remove_value(99, 1) is False
        assert len(bank.rows()) == 3

    def test_remove_last_address_prunes_register(self):
        bank = _bank()
        bank.remove_value(2, 1)
        assert 2 not in bank.registers

    def test_triples(self):
        assert _bank().triples() == {(1, 10, "a"), (1, 16, "b"), (2, 1, "c")}

    def test_copy_is_independent(self):
        bank = _bank()
        clone = bank.copy()
        clone.set_value(1, 10, "changed")
        clone.title = "Other"
        assert bank.get_value(1, 10) == "a"
        assert bank.title == "Main"


class TestWorkspace:

    def test_put_get_contains(self):
        ws = Workspace()
        ws.put(_bank())
        assert 1 in ws
        assert len(ws) == 1
        assert ws.get(1).title == "Main"
        assert ws.get(2) is None

    def test_bank_list_ascending(self):
        ws = Workspace()
        ws.put(Bank(id=5, title="five"))
        ws.put(Bank(id=2, title="two"))
        assert ws.bank_list() == [(2, "two"), (5, "five")]

    def test_snapshot_is_deep(self):
        ws = Workspace()
        ws.put(_bank())
        snap = ws.snapshot()
        ws.get(1).set_value(1, 10, "edited")
        ws.get(1).remove_value(2, 1)
        assert snap.get(1).get_value(1, 10) == "a"
        assert snap.get(1).get_value(2, 1) == "c"

    def test_snapshot_subset_skips_missing(self):
        ws = Workspace()
        ws.put(Bank(id=1))
        ws.put(Bank(id=2))
        snap = ws.snapshot([2, 7])
        assert list(snap.banks) == [2]
