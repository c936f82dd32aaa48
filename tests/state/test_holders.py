"""Tests for divpool/state/holders.py: index-addressable holder set."""

import pytest

from divpool.state.holders import HolderSet


def _set(*accounts: str) -> HolderSet:
    hs = HolderSet()
    for a in accounts:
        hs.add(a)
    return hs


class TestMembership:
    def test_add_is_idempotent(self):
        hs = HolderSet()
        assert hs.add("alice") is True
        assert hs.add("alice") is False
        assert hs.size() == 1

    def test_remove_missing(self):
        assert HolderSet().remove("alice") is False

    def test_contains(self):
        hs = _set("alice")
        assert hs.contains("alice")
        assert "alice" in hs
        assert not hs.contains("bob")


class TestPositions:
    def test_index_of(self):
        hs = _set("a", "b", "c")
        assert [hs.index_of(k) for k in "abc"] == [0, 1, 2]
        assert hs.index_of("zzz") == -1

    def test_remove_moves_last_into_gap(self):
        hs = _set("a", "b", "c", "d")
        hs.remove("b")
        assert hs.snapshot() == ["a", "d", "c"]
        assert hs.index_of("d") == 1
        assert hs.verify_index()

    def test_remove_last(self):
        hs = _set("a", "b")
        hs.remove("b")
        assert hs.snapshot() == ["a"]

    def test_key_at_out_of_range(self):
        hs = _set("a")
        assert hs.key_at(0) == "a"
        with pytest.raises(IndexError):
            hs.key_at(1)
        with pytest.raises(IndexError):
            hs.key_at(-1)


class TestInsertAt:
    @pytest.mark.parametrize("victim", ["a", "b", "c", "d"])
    def test_inverse_of_remove(self, victim):
        hs = _set("a", "b", "c", "d")
        before = hs.snapshot()
        position = hs.index_of(victim)
        hs.remove(victim)
        hs.insert_at(victim, position)
        assert hs.snapshot() == before
        assert hs.verify_index()

    def test_rejects_member(self):
        hs = _set("a")
        with pytest.raises(ValueError):
            hs.insert_at("a", 0)

    def test_rejects_bad_index(self):
        with pytest.raises(IndexError):
            _set("a").insert_at("b", 5)


def test_iteration_is_a_copy():
    hs = _set("a", "b")
    for k in hs:
        hs.remove(k)
    assert len(hs) == 0
