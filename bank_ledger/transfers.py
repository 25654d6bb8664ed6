"""
Transfer Engine Module

Moves funds between accounts and across the bank boundary. Interest is
always settled on a savings account before the balance change that touches
it, and the settlement record always precedes the movement record in the
log. All tables touched by an operation are committed in one batch at the
end; if anything fails first, in-memory state is reset to the last commit.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, List, Optional, Union

from .accounts import Account, AccountManager
from .config import LedgerConfig, get_config
from .currency import format_amount, to_decimal
from .exceptions import InsufficientFunds, InvalidAmount, SelfTransferNotAllowed
from .logging_config import get_logger, log_action
from .transactions import (
    DepositDetails, InterestDetails, Transaction, TransactionKind, TransactionLog,
    WithdrawDetails
)

if TYPE_CHECKING:
    from .ledger import LedgerStore


Amount = Union[Decimal, int, str]


@dataclass
class TransferResult:
    """Outcome of a balance movement: final account states and the records written"""
    amount: Decimal
    source: Optional[Account] = None
    destination: Optional[Account] = None
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def interest_applied(self) -> Decimal:
        """Total interest settled as part of the movement"""
        return sum((t.amount for t in self.transactions if t.kind.is_interest), Decimal('0'))


class TransferEngine:
    """
    Orchestrates interest settlement, balance changes, transaction records
    and the final commit for every balance-changing operation
    """

    def __init__(
        self,
        store: 'LedgerStore',
        accounts: AccountManager,
        log: TransactionLog,
        config: Optional[LedgerConfig] = None
    ):
        self.store = store
        self.accounts = accounts
        self.log = log
        self.config = config or get_config()
        self.logger = get_logger("bank_ledger.transfers")

    def transfer(
        self,
        from_account_number: str,
        to_account_number: str,
        amount: Amount,
        as_of: Optional[datetime] = None
    ) -> TransferResult:
        """
        Move amount from one account to another

        Args:
            from_account_number: Account to debit
            to_account_number: Account to credit
            amount: Positive amount to move
            as_of: Instant of the transfer, defaults to now

        Returns:
            TransferResult with the records in the order they were written

        Raises:
            AccountNotFound: If either account does not exist
            SelfTransferNotAllowed: If both sides are the same account
            InvalidAmount: If amount <= 0
            InsufficientFunds: If amount exceeds the source balance
            StorageWriteFailed: If the final commit fails
        """
        as_of = as_of or datetime.now(timezone.utc)

        with self.store.lock:
            source = self.accounts.require_account(from_account_number)
            destination = self.accounts.require_account(to_account_number)

            if source.account_number == destination.account_number:
                raise SelfTransferNotAllowed("Cannot transfer to the same account")
            amount = to_decimal(amount)
            self._check_withdrawal(source, amount)

            def apply(result: TransferResult) -> None:
                self._debit(source, amount, result, as_of, WithdrawDetails(receiver=destination.id))
                self._credit(destination, amount, result, as_of, DepositDetails(sender=source.id))

            result = self._run(apply, TransferResult(amount=amount, source=source, destination=destination))

        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"account:{from_account_number}",
            extra={
                "from_account": from_account_number,
                "to_account": to_account_number,
                "amount": str(amount),
                "interest_applied": str(result.interest_applied),
                "records": [t.kind.value for t in result.transactions]
            }
        )
        return result

    def deposit(self, account_number: str, amount: Amount, as_of: Optional[datetime] = None) -> TransferResult:
        """
        Credit cash arriving from outside the bank

        Raises:
            AccountNotFound: If the account does not exist
            InvalidAmount: If amount <= 0
        """
        as_of = as_of or datetime.now(timezone.utc)

        with self.store.lock:
            account = self.accounts.require_account(account_number)
            amount = to_decimal(amount)
            if amount <= 0:
                raise InvalidAmount("Deposit amount must be positive")

            result = self._run(
                lambda r: self._credit(account, amount, r, as_of, DepositDetails()),
                TransferResult(amount=amount, destination=account)
            )

        log_action(
            self.logger, "info", "Cash deposit completed",
            action="deposit", resource=f"account:{account_number}",
            extra={"amount": str(amount), "interest_applied": str(result.interest_applied)}
        )
        return result

    def withdraw(self, account_number: str, amount: Amount, as_of: Optional[datetime] = None) -> TransferResult:
        """
        Debit cash leaving the bank

        Raises:
            AccountNotFound: If the account does not exist
            InvalidAmount: If amount <= 0
            InsufficientFunds: If amount exceeds the balance
        """
        as_of = as_of or datetime.now(timezone.utc)

        with self.store.lock:
            account = self.accounts.require_account(account_number)
            amount = to_decimal(amount)
            self._check_withdrawal(account, amount)

            result = self._run(
                lambda r: self._debit(account, amount, r, as_of, WithdrawDetails()),
                TransferResult(amount=amount, source=account)
            )

        log_action(
            self.logger, "info", "Cash withdrawal completed",
            action="withdraw", resource=f"account:{account_number}",
            extra={"amount": str(amount), "interest_applied": str(result.interest_applied)}
        )
        return result

    def settle_interest(self, account: Account, kind: TransactionKind, as_of: datetime) -> Optional[Transaction]:
        """
        Apply accrued interest to a savings account and record it

        Does nothing for accounts without interest. On a savings account the
        accrual clock moves to as_of every time; a record is written only
        for a positive accrual. The caller commits.
        """
        savings = account.as_interest_bearing()
        if savings is None:
            return None

        applied = savings.apply_interest(as_of, self.config.days_per_year)
        self.accounts.save(savings)
        if applied <= 0:
            return None

        record = self.log.record(
            savings.account_number, kind, applied,
            InterestDetails(interest_rate=savings.interest_rate), as_of
        )

        log_action(
            self.logger, "info", "Interest settled",
            action="apply_interest", resource=f"account:{savings.account_number}",
            extra={
                "amount": str(applied),
                "interest_rate": str(savings.interest_rate),
                "kind": kind.value
            }
        )
        return record

    def _check_withdrawal(self, account: Account, amount: Decimal) -> None:
        if amount <= 0:
            raise InvalidAmount("Transfer amount must be positive")
        if amount > account.balance:
            raise InsufficientFunds(
                f"Insufficient funds in {account.account_number}: balance "
                f"{format_amount(account.balance, account.currency)}, requested "
                f"{format_amount(amount, account.currency)}"
            )

    def _debit(self, account: Account, amount: Decimal, result: TransferResult,
               as_of: datetime, details: WithdrawDetails) -> None:
        interest = self.settle_interest(account, TransactionKind.INTEREST_BEFORE_WITHDRAW, as_of)
        if interest:
            result.transactions.append(interest)

        account.withdraw(amount, at=as_of)
        self.accounts.save(account)
        result.transactions.append(
            self.log.record(account.account_number, TransactionKind.WITHDRAW, amount, details, as_of)
        )

    def _credit(self, account: Account, amount: Decimal, result: TransferResult,
                as_of: datetime, details: DepositDetails) -> None:
        interest = self.settle_interest(account, TransactionKind.INTEREST_BEFORE_DEPOSIT, as_of)
        if interest:
            result.transactions.append(interest)

        account.deposit(amount, at=as_of)
        self.accounts.save(account)
        result.transactions.append(
            self.log.record(account.account_number, TransactionKind.DEPOSIT, amount, details, as_of)
        )

    def _run(self, apply: Callable[[TransferResult], None], result: TransferResult) -> TransferResult:
        """
        Apply in-memory mutations, then commit transactions and accounts together

        A failure while applying resets memory to the last commit. A failed
        commit leaves memory as applied, so store.commit() can be retried.
        """
        try:
            apply(result)
        except Exception:
            self.store.rollback()
            raise

        self.store.commit(self.store.transactions, self.store.accounts)
        return result
