"""Tests for divpool/state/shares.py: share ledger and pre-mutation listeners."""

from typing import Mapping

import pytest

from divpool.core.errors import InsufficientSharesError
from divpool.state.shares import ShareLedger


class Recorder:
    def __init__(self, ledger: ShareLedger) -> None:
        self.ledger = ledger
        self.calls: list[tuple[dict, dict]] = []

    def on_balances_will_change(self, changes: Mapping[str, int]) -> None:
        # Capture what the ledger shows at hook time.
        visible = {a: self.ledger.balance_of(a) for a in changes}
        self.calls.append((dict(changes), visible))


class Refuser:
    def on_balances_will_change(self, changes: Mapping[str, int]) -> None:
        raise RuntimeError("nope")


class TestMintBurn:
    def test_mint(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        assert ledger.balance_of("alice") == 10
        assert ledger.total_supply() == 10

    def test_burn(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        ledger.burn("alice", 10)
        assert ledger.balance_of("alice") == 0
        assert ledger.total_supply() == 0
        assert ledger.get_all_balances() == {}

    def test_burn_too_much(self):
        ledger = ShareLedger()
        ledger.mint("alice", 1)
        with pytest.raises(InsufficientSharesError):
            ledger.burn("alice", 2)

    def test_negative_amount(self):
        with pytest.raises(ValueError):
            ShareLedger().mint("alice", -1)


class TestTransfer:
    def test_moves_balance(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        ledger.transfer("alice", "bob", 4)
        assert ledger.balance_of("alice") == 6
        assert ledger.balance_of("bob") == 4
        assert ledger.total_supply() == 10

    def test_insufficient(self):
        ledger = ShareLedger()
        with pytest.raises(InsufficientSharesError):
            ledger.transfer("alice", "bob", 1)

    def test_self_transfer(self):
        ledger = ShareLedger()
        rec = Recorder(ledger)
        ledger.mint("alice", 10)
        ledger.add_listener(rec)
        ledger.transfer("alice", "alice", 3)
        assert ledger.balance_of("alice") == 10
        assert rec.calls == [({"alice": 10}, {"alice": 10})]


class TestListeners:
    def test_listener_sees_pending_and_pre_change_balances(self):
        ledger = ShareLedger()
        rec = Recorder(ledger)
        ledger.add_listener(rec)
        ledger.mint("alice", 10)
        ledger.transfer("alice", "bob", 4)
        assert rec.calls == [
            ({"alice": 10}, {"alice": 0}),
            ({"alice": 6, "bob": 4}, {"alice": 10, "bob": 0}),
        ]

    def test_listener_failure_aborts_mutation(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        ledger.add_listener(Refuser())
        with pytest.raises(RuntimeError):
            ledger.transfer("alice", "bob", 4)
        assert ledger.balance_of("alice") == 10
        assert ledger.balance_of("bob") == 0

    def test_add_listener_once(self):
        ledger = ShareLedger()
        rec = Recorder(ledger)
        ledger.add_listener(rec)
        ledger.add_listener(rec)
        ledger.mint("alice", 1)
        assert len(rec.calls) == 1

    def test_second_listener_rejected(self):
        ledger = ShareLedger()
        ledger.add_listener(Recorder(ledger))
        with pytest.raises(ValueError, match="single balance listener"):
            ledger.add_listener(Recorder(ledger))
