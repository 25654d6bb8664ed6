"""
Test suite for the transaction log

Records are immutable, carry kind-specific details, and can rebuild an
account's balance from zero.
"""

import pytest
import dataclasses
from decimal import Decimal
from datetime import datetime, timezone

from bank_ledger.exceptions import InvalidAmount
from bank_ledger.ledger import LedgerStore
from bank_ledger.transactions import (
    DepositDetails, InterestDetails, Transaction, TransactionKind, TransactionLog,
    WithdrawDetails
)


class TestTransactionKind:
    """Test kind properties"""

    def test_wire_values(self):
        assert TransactionKind.DEPOSIT.value == "deposit"
        assert TransactionKind.WITHDRAW.value == "withdraw"
        assert TransactionKind.INTEREST_BEFORE_WITHDRAW.value == "interest_applied_before_withdraw"
        assert TransactionKind.INTEREST_BEFORE_DEPOSIT.value == "interest_applied_before_deposit"

    def test_interest_kinds(self):
        assert TransactionKind.INTEREST_BEFORE_DEPOSIT.is_interest
        assert TransactionKind.INTEREST_BEFORE_WITHDRAW.is_interest
        assert not TransactionKind.DEPOSIT.is_interest

    def test_signs(self):
        assert TransactionKind.WITHDRAW.sign == -1
        assert TransactionKind.DEPOSIT.sign == 1
        assert TransactionKind.INTEREST_BEFORE_WITHDRAW.sign == 1


class TestTransaction:
    """Test Transaction record"""

    def make(self, amount="10", kind=TransactionKind.DEPOSIT):
        return Transaction(
            id="TXN001",
            account_number="1000000001",
            amount=Decimal(amount),
            kind=kind,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            details={"sender": None}
        )

    def test_is_immutable(self):
        transaction = self.make()
        with pytest.raises(dataclasses.FrozenInstanceError):
            transaction.amount = Decimal("99")

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmount):
            self.make(amount="-1")

    def test_signed_amount(self):
        assert self.make("10", TransactionKind.WITHDRAW).signed_amount == Decimal("-10")
        assert self.make("10", TransactionKind.DEPOSIT).signed_amount == Decimal("10")

    def test_storage_round_trip(self):
        transaction = self.make()
        data = transaction.to_dict()

        assert data["kind"] == "deposit"
        assert data["amount"] == "10"
        assert Transaction.from_dict(data) == transaction


class TestTransactionLog:
    """Test TransactionLog functionality"""

    @pytest.fixture(autouse=True)
    def _log(self, store, config):
        """Set up test fixtures"""
        self.store = store
        self.config = config
        self.log = TransactionLog(store)

    def test_record_details_by_kind(self):
        deposit = self.log.record("A", TransactionKind.DEPOSIT, "5", DepositDetails(sender="cust-1"))
        withdraw = self.log.record("A", TransactionKind.WITHDRAW, "2", WithdrawDetails(receiver="cust-2"))
        interest = self.log.record(
            "A", TransactionKind.INTEREST_BEFORE_DEPOSIT, "0.10", InterestDetails(interest_rate=Decimal("0.05"))
        )
        cash = self.log.record("A", TransactionKind.DEPOSIT, "1", DepositDetails())

        assert deposit.details == {"sender": "cust-1"}
        assert withdraw.details == {"receiver": "cust-2"}
        assert interest.details == {"interest_rate": "0.05"}
        assert cash.details == {"sender": None}

    def test_record_is_not_committed(self):
        """The caller owns the commit"""
        self.log.record("A", TransactionKind.DEPOSIT, "5")

        assert len(LedgerStore(config=self.config).transactions) == 0
        self.store.commit(self.store.transactions)
        assert len(LedgerStore(config=self.config).transactions) == 1

    def test_get_transactions_in_order(self):
        first = self.log.record("A", TransactionKind.DEPOSIT, "5")
        self.log.record("B", TransactionKind.DEPOSIT, "7")
        second = self.log.record("A", TransactionKind.WITHDRAW, "3")

        assert [t.id for t in self.log.get_transactions("A")] == [first.id, second.id]
        assert self.log.get_transactions("missing") == []

    def test_replay_balance(self):
        self.log.record("A", TransactionKind.DEPOSIT, "100")
        self.log.record("A", TransactionKind.INTEREST_BEFORE_WITHDRAW, "1.25")
        self.log.record("A", TransactionKind.WITHDRAW, "40")

        assert self.log.replay_balance("A") == Decimal("61.25")
        assert self.log.replay_balance("nobody") == Decimal("0")

    def test_records_survive_reload_unchanged(self):
        recorded = self.log.record(
            "A", TransactionKind.INTEREST_BEFORE_WITHDRAW, "0.10", InterestDetails(interest_rate=Decimal("0.05"))
        )
        self.store.commit(self.store.transactions)

        reloaded = TransactionLog(LedgerStore(config=self.config))
        assert reloaded.get_transactions("A") == [recorded]
