"""
Bank Service

The ledger's boundary operations for the shell and authentication layers.
Every operation takes the customer or account it acts on as an argument;
there is no ambient logged-in user.
"""

from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from .accounts import Account, AccountKind, AccountManager, SavingsAccount
from .config import LedgerConfig, get_config
from .currency import Currency
from .customers import Customer, CustomerManager
from .exceptions import CustomerNotFound
from .ledger import LedgerStore
from .transactions import Transaction, TransactionLog
from .transfers import TransferEngine, TransferResult


class BankService:
    """
    Facade wiring the ledger store, managers and transfer engine together
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        config: Optional[LedgerConfig] = None,
        data_dir: Optional[Union[str, Path]] = None
    ):
        self.config = config or get_config()
        self.store = store or LedgerStore(data_dir, self.config)
        self.customers = CustomerManager(self.store)
        self.accounts = AccountManager(self.store, self.config)
        self.log = TransactionLog(self.store)
        self.engine = TransferEngine(self.store, self.accounts, self.log, self.config)

    # Customers

    def create_customer(self, first_name: str, last_name: str, email: str, password: str) -> Customer:
        """Register a customer; raises DuplicateEmail for a taken email"""
        with self.store.lock:
            return self.customers.create_customer(first_name, last_name, email, password)

    def get_customer(self, customer_id: str) -> Customer:
        return self.customers.require_customer(customer_id)

    def get_customer_by_email(self, email: str) -> Optional[Customer]:
        return self.customers.get_customer_by_email(email)

    def update_customer_details(self, customer_id: str, first_name: str, last_name: str, email: str) -> Customer:
        """Rewrite name and email; raises CustomerNotFound or DuplicateEmail"""
        with self.store.lock:
            return self.customers.update_customer_details(customer_id, first_name, last_name, email)

    # Accounts

    def create_account(
        self,
        customer_id: str,
        kind: Union[str, AccountKind],
        currency: Optional[Union[str, Currency]] = None
    ) -> Account:
        """Open an account; raises DuplicateAccountKind if the customer has one of this kind"""
        with self.store.lock:
            return self.accounts.create_account(customer_id, kind, currency)

    def create_account_by_email(
        self,
        email: str,
        kind: Union[str, AccountKind],
        currency: Optional[Union[str, Currency]] = None
    ) -> Account:
        """Open an account for the customer registered under email"""
        with self.store.lock:
            customer = self._customer_for_email(email)
            return self.accounts.create_account(customer.id, kind, currency)

    def get_account(self, account_number: str) -> Account:
        return self.accounts.require_account(account_number)

    def get_accounts_by_customer(
        self,
        customer_id: Optional[str] = None,
        email: Optional[str] = None
    ) -> List[Account]:
        """
        Accounts owned by a customer, identified by id or by email

        Raises:
            ValueError: Unless exactly one of customer_id and email is given
            CustomerNotFound: If email is given and nobody is registered under it
        """
        if (customer_id is None) == (email is None):
            raise ValueError("Pass exactly one of customer_id or email")
        if email is not None:
            customer_id = self._customer_for_email(email).id
        return self.accounts.get_customer_accounts(customer_id)

    def update_interest_rate(self, account_number: str, rate: Union[Decimal, str]) -> SavingsAccount:
        with self.store.lock:
            return self.accounts.update_interest_rate(account_number, rate)

    # Money movement

    def transfer(
        self,
        from_account_number: str,
        to_account_number: str,
        amount: Union[Decimal, int, str]
    ) -> TransferResult:
        return self.engine.transfer(from_account_number, to_account_number, amount)

    def deposit(self, account_number: str, amount: Union[Decimal, int, str]) -> TransferResult:
        return self.engine.deposit(account_number, amount)

    def withdraw(self, account_number: str, amount: Union[Decimal, int, str]) -> TransferResult:
        return self.engine.withdraw(account_number, amount)

    def get_transactions(self, account_number: str) -> List[Transaction]:
        """Records for an account in chronological order"""
        return self.log.get_transactions(account_number)

    def _customer_for_email(self, email: str) -> Customer:
        customer = self.customers.get_customer_by_email(email)
        if not customer:
            raise CustomerNotFound(f"No customer registered with email {email}")
        return customer
