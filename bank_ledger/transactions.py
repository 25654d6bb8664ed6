"""
Transaction Log Module

Immutable, append-only records of every balance-changing event. Each
record is tagged with a kind from a closed set and carries a kind-specific
detail payload. The log can rebuild any account's balance from zero.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union
import uuid

from .currency import to_decimal
from .exceptions import InvalidAmount
from .storage import StorageRecord

if TYPE_CHECKING:
    from .ledger import LedgerStore


class TransactionKind(Enum):
    """Types of balance-changing events"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    INTEREST_BEFORE_WITHDRAW = "interest_applied_before_withdraw"
    INTEREST_BEFORE_DEPOSIT = "interest_applied_before_deposit"

    @property
    def is_interest(self) -> bool:
        return self in (TransactionKind.INTEREST_BEFORE_WITHDRAW, TransactionKind.INTEREST_BEFORE_DEPOSIT)

    @property
    def sign(self) -> int:
        """Direction the kind moves the balance"""
        return -1 if self == TransactionKind.WITHDRAW else 1


@dataclass(frozen=True)
class DepositDetails:
    """Counterparty of a deposit; None for cash from outside the bank"""
    sender: Optional[str] = None


@dataclass(frozen=True)
class WithdrawDetails:
    """Counterparty of a withdrawal; None for cash leaving the bank"""
    receiver: Optional[str] = None


@dataclass(frozen=True)
class InterestDetails:
    """Rate used for an interest settlement"""
    interest_rate: Decimal


Details = Union[DepositDetails, WithdrawDetails, InterestDetails]


@dataclass(frozen=True)
class Transaction(StorageRecord):
    """
    A single committed balance movement on one account.

    amount is never negative; the kind says which way it moved.
    """
    id: str
    account_number: str
    amount: Decimal
    kind: TransactionKind
    timestamp: datetime
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.amount < 0:
            raise InvalidAmount("Transaction amount must be non-negative")

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the direction applied"""
        return self.amount * self.kind.sign


class TransactionLog:
    """
    Appends and queries transaction records in the ledger store
    """

    def __init__(self, store: 'LedgerStore'):
        self.store = store
        self.table = store.transactions

    def record(
        self,
        account_number: str,
        kind: TransactionKind,
        amount: Union[Decimal, int, str],
        details: Optional[Details] = None,
        timestamp: Optional[datetime] = None
    ) -> Transaction:
        """
        Append a transaction record in memory (committed by the caller)

        Args:
            account_number: Account the record is written against
            kind: Kind of movement
            amount: Non-negative amount
            details: Kind-specific detail payload
            timestamp: When it happened, defaults to now

        Returns:
            The appended Transaction
        """
        transaction = Transaction(
            id=str(uuid.uuid4()),
            account_number=account_number,
            amount=to_decimal(amount),
            kind=kind,
            timestamp=timestamp or datetime.now(timezone.utc),
            details=self._details_to_dict(details)
        )
        self.table.add(transaction)
        return transaction

    def get_transactions(self, account_number: str) -> List[Transaction]:
        """All records for an account in the order they were written"""
        return self.table.find(lambda t: t.account_number == account_number)

    def replay_balance(self, account_number: str) -> Decimal:
        """Rebuild an account's balance by replaying its records from zero"""
        balance = Decimal('0')
        for transaction in self.get_transactions(account_number):
            balance += transaction.signed_amount
        return balance

    @staticmethod
    def _details_to_dict(details: Optional[Details]) -> Dict[str, Any]:
        if details is None:
            return {}
        # Kept as strings so records compare equal before and after a reload
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in asdict(details).items()}
