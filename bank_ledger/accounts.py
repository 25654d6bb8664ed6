"""
Account Management Module

Current and savings accounts with balance-mutation rules, interest
settlement for savings, and account creation/lookup against the ledger
store. Accounts form a closed set of kinds; interest state lives only on
the savings record.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Dict, List, Optional, Type, Union
import secrets
import uuid

from .config import LedgerConfig, get_config
from .currency import Currency, format_amount, to_decimal
from .exceptions import (
    AccountNotFound, CustomerNotFound, DuplicateAccountKind, InsufficientFunds,
    InvalidAccountKind, InvalidAmount, InvalidInterestRate
)
from .interest import calculate_accrued_interest
from .logging_config import get_logger, log_action
from .storage import StorageRecord

if TYPE_CHECKING:
    from .ledger import LedgerStore


class AccountKind(Enum):
    """Banking product kinds"""
    CURRENT = "current"
    SAVINGS = "savings"

    @classmethod
    def parse(cls, kind: Union[str, "AccountKind"]) -> "AccountKind":
        """Accept an AccountKind or its string value"""
        if isinstance(kind, AccountKind):
            return kind
        try:
            return cls(str(kind).strip().lower())
        except ValueError:
            raise InvalidAccountKind(f"Unknown account kind '{kind}'") from None


@dataclass
class Account(StorageRecord):
    """
    Bank account holding a Decimal balance.

    Subclasses fix the kind. Callers deposit and withdraw without knowing
    which kind they hold; interest is reached only through
    as_interest_bearing().
    """
    id: str
    customer_id: str
    account_number: str
    currency: Currency
    created_at: datetime
    updated_at: datetime
    balance: Decimal = Decimal('0')

    kind: ClassVar[AccountKind]

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage, tagged with the kind"""
        result = super().to_dict()
        result['kind'] = self.kind.value
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> 'Account':
        """Create the right account subclass from a stored dictionary"""
        if cls is Account:
            return ACCOUNT_TYPES[AccountKind.parse(data['kind'])].from_dict(data)
        return super().from_dict(data)

    def deposit(self, amount: Union[Decimal, int, str], at: Optional[datetime] = None) -> Decimal:
        """
        Add amount to the balance

        Raises:
            InvalidAmount: If amount <= 0

        Returns:
            The new balance
        """
        amount = to_decimal(amount)
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be positive")

        self.balance += amount
        self.updated_at = at or datetime.now(timezone.utc)
        return self.balance

    def withdraw(self, amount: Union[Decimal, int, str], at: Optional[datetime] = None) -> Decimal:
        """
        Take amount off the balance

        Raises:
            InvalidAmount: If amount <= 0
            InsufficientFunds: If amount exceeds the balance

        Returns:
            The new balance
        """
        amount = to_decimal(amount)
        if amount <= 0:
            raise InvalidAmount("Withdrawal amount must be positive")
        if amount > self.balance:
            raise InsufficientFunds(
                f"Insufficient funds in {self.account_number}: balance "
                f"{format_amount(self.balance, self.currency)}, requested "
                f"{format_amount(amount, self.currency)}"
            )

        self.balance -= amount
        self.updated_at = at or datetime.now(timezone.utc)
        return self.balance

    def as_interest_bearing(self) -> Optional['SavingsAccount']:
        """The interest-bearing view of this account, if it has one"""
        return None


@dataclass
class CurrentAccount(Account):
    """Current account with plain deposit and withdrawal"""

    kind: ClassVar[AccountKind] = AccountKind.CURRENT


@dataclass
class SavingsAccount(Account):
    """Savings account accruing simple interest at a flat annual rate"""
    interest_rate: Decimal = Decimal('0')
    last_interest_applied_at: Optional[datetime] = None
    interest_rate_updated_at: Optional[datetime] = None

    kind: ClassVar[AccountKind] = AccountKind.SAVINGS

    def __post_init__(self):
        if self.interest_rate < 0:
            raise InvalidInterestRate("Interest rate must be non-negative")
        if self.last_interest_applied_at is None:
            self.last_interest_applied_at = self.created_at
        if self.interest_rate_updated_at is None:
            self.interest_rate_updated_at = self.created_at

    def as_interest_bearing(self) -> 'SavingsAccount':
        return self

    def accrued_interest(self, as_of: Optional[datetime] = None, days_per_year: int = 365) -> Decimal:
        """Interest earned since the last settlement, not yet in the balance"""
        return calculate_accrued_interest(
            principal=self.balance,
            annual_rate=self.interest_rate,
            since=self.last_interest_applied_at,
            as_of=as_of or datetime.now(timezone.utc),
            currency=self.currency,
            days_per_year=days_per_year
        )

    def apply_interest(self, as_of: Optional[datetime] = None, days_per_year: int = 365) -> Decimal:
        """
        Settle accrued interest into the balance

        Called right before every balance change. The accrual clock always
        moves forward to as_of, even when nothing accrued, so interest is
        never paid for a period at a balance the account did not hold.
        Only a strictly positive accrual changes the balance.

        Returns:
            The amount applied (zero if none)
        """
        as_of = as_of or datetime.now(timezone.utc)
        accrued = self.accrued_interest(as_of, days_per_year)
        if as_of > self.last_interest_applied_at:
            self.last_interest_applied_at = as_of
        if accrued <= 0:
            return Decimal('0')

        self.balance += accrued
        self.updated_at = as_of
        return accrued

    def update_interest_rate(self, new_rate: Union[Decimal, int, str], at: Optional[datetime] = None) -> None:
        """
        Change the annual rate

        The new rate covers the whole unsettled window: the next settlement
        charges it back to last_interest_applied_at, not just from now.
        interest_rate_updated_at is kept for reference only.
        """
        try:
            new_rate = to_decimal(new_rate)
        except InvalidAmount:
            raise InvalidInterestRate(f"Invalid interest rate: {new_rate!r}") from None
        if new_rate < 0:
            raise InvalidInterestRate("Interest rate must be non-negative")

        now = at or datetime.now(timezone.utc)
        self.interest_rate = new_rate
        self.interest_rate_updated_at = now
        self.updated_at = now


ACCOUNT_TYPES: Dict[AccountKind, Type[Account]] = {
    AccountKind.CURRENT: CurrentAccount,
    AccountKind.SAVINGS: SavingsAccount,
}


class AccountManager:
    """
    Creates and looks up accounts in the ledger store
    """

    def __init__(self, store: 'LedgerStore', config: Optional[LedgerConfig] = None):
        self.store = store
        self.table = store.accounts
        self.config = config or get_config()
        self.logger = get_logger("bank_ledger.accounts")

    def create_account(
        self,
        customer_id: str,
        kind: Union[str, AccountKind],
        currency: Optional[Union[str, Currency]] = None,
        interest_rate: Optional[Union[Decimal, str]] = None
    ) -> Account:
        """
        Open a new account for a customer and commit the accounts table

        Args:
            customer_id: ID of account owner
            kind: "current" or "savings"
            currency: Currency tag, defaults to the configured currency
            interest_rate: Annual rate for savings, defaults to the configured rate

        Returns:
            Created Account object

        Raises:
            CustomerNotFound: If the customer does not exist
            DuplicateAccountKind: If the customer already holds this kind
            InvalidAccountKind: If kind is unknown
        """
        kind = AccountKind.parse(kind)
        if customer_id not in self.store.customers:
            raise CustomerNotFound(f"Customer {customer_id} not found")

        existing = self.table.find_one(lambda a: a.customer_id == customer_id and a.kind == kind)
        if existing:
            raise DuplicateAccountKind(f"Customer already has a {kind.value} account")

        now = datetime.now(timezone.utc)
        fields = dict(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            account_number=self._generate_account_number(),
            currency=Currency.from_code(currency or self.config.default_currency),
            created_at=now,
            updated_at=now,
        )

        if kind == AccountKind.SAVINGS:
            rate = self.config.default_savings_rate if interest_rate is None else interest_rate
            try:
                rate = to_decimal(rate)
            except InvalidAmount:
                raise InvalidInterestRate(f"Invalid interest rate: {rate!r}") from None
            account = SavingsAccount(interest_rate=rate, **fields)
        else:
            account = CurrentAccount(**fields)

        self.table.add(account)
        self.store.commit(self.table)

        log_action(
            self.logger, "info", f"Account created: {kind.value}",
            action="create_account", resource=f"account:{account.account_number}",
            extra={
                "customer_id": customer_id,
                "kind": kind.value,
                "currency": account.currency.code
            }
        )
        return account

    def get_account(self, account_number: str) -> Optional[Account]:
        """Get account by account number"""
        return self.table.get(account_number)

    def require_account(self, account_number: str) -> Account:
        """Get account by account number or raise AccountNotFound"""
        account = self.get_account(account_number)
        if not account:
            raise AccountNotFound(f"Account {account_number} not found")
        return account

    def get_customer_accounts(self, customer_id: str) -> List[Account]:
        """Get all accounts for a customer"""
        return self.table.find(lambda a: a.customer_id == customer_id)

    def save(self, account: Account) -> None:
        """Hand a mutated account back to the table (in memory only)"""
        self.table.update(account)

    def update_interest_rate(self, account_number: str, new_rate: Union[Decimal, str]) -> SavingsAccount:
        """
        Change a savings account's annual rate and commit

        Raises:
            AccountNotFound: If the account does not exist
            InvalidAccountKind: If the account is not a savings account
            InvalidInterestRate: If the rate is negative
        """
        account = self.require_account(account_number)
        savings = account.as_interest_bearing()
        if savings is None:
            raise InvalidAccountKind(f"Account {account_number} does not bear interest")

        savings.update_interest_rate(new_rate)
        self.save(savings)
        self.store.commit(self.table)

        log_action(
            self.logger, "info", "Interest rate updated",
            action="update_interest_rate", resource=f"account:{account_number}",
            extra={"interest_rate": str(savings.interest_rate)}
        )
        return savings

    def _generate_account_number(self) -> str:
        """Random account number of the configured length, unique in the table"""
        length = self.config.account_number_length
        low = 10 ** (length - 1)
        while True:
            number = str(low + secrets.randbelow(9 * low))
            if number not in self.table:
                return number
