"""
Customer Management Module

Manages customer profiles: creation with unique email, lookup by id or
email, and explicit detail updates.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional
import re
import uuid

from .exceptions import CustomerNotFound, DuplicateEmail, InvalidEmail
from .logging_config import get_logger, log_action
from .storage import StorageRecord

if TYPE_CHECKING:
    from .ledger import LedgerStore


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def normalize_email(email: str) -> str:
    """Canonical form used for uniqueness checks"""
    return email.strip().lower()


@dataclass
class Customer(StorageRecord):
    """
    Customer profile.

    The password is stored exactly as given. It is NOT hashed; whatever
    authenticates customers must not rely on this record for secrecy.
    """
    id: str
    first_name: str
    last_name: str
    email: str
    password: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        if not EMAIL_PATTERN.match(self.email):
            raise InvalidEmail(f"Invalid email format: {self.email!r}")

    @property
    def full_name(self) -> str:
        """Get customer's full name"""
        return f"{self.first_name} {self.last_name}"


class CustomerManager:
    """
    Manages customer lifecycle against the customers table
    """

    def __init__(self, store: 'LedgerStore'):
        self.store = store
        self.table = store.customers
        self.logger = get_logger("bank_ledger.customers")

    def create_customer(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str
    ) -> Customer:
        """
        Create a new customer and commit the customers table

        Args:
            first_name: Customer's first name
            last_name: Customer's last name
            email: Customer's email address, unique across customers
            password: Password as supplied by the caller (stored unhashed)

        Returns:
            Created Customer object

        Raises:
            DuplicateEmail: If the email is already registered
            InvalidEmail: If the email is malformed
        """
        email = normalize_email(email)
        if self.get_customer_by_email(email):
            raise DuplicateEmail(f"Customer with email {email} already exists")

        now = datetime.now(timezone.utc)
        customer = Customer(
            id=str(uuid.uuid4()),
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            created_at=now,
            updated_at=now
        )

        self.table.add(customer)
        self.store.commit(self.table)

        log_action(
            self.logger, "info", "Customer created",
            action="create_customer", resource=f"customer:{customer.id}",
            extra={"email": email}
        )
        return customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Get customer by ID"""
        return self.table.get(customer_id)

    def require_customer(self, customer_id: str) -> Customer:
        """Get customer by ID or raise CustomerNotFound"""
        customer = self.get_customer(customer_id)
        if not customer:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        return customer

    def get_customer_by_email(self, email: str) -> Optional[Customer]:
        """Get customer by email (case-insensitive)"""
        email = normalize_email(email)
        return self.table.find_one(lambda c: c.email == email)

    def update_customer_details(
        self,
        customer_id: str,
        first_name: str,
        last_name: str,
        email: str
    ) -> Customer:
        """
        Rewrite a customer's name and email

        Raises:
            CustomerNotFound: If the customer does not exist
            DuplicateEmail: If the new email belongs to another customer
        """
        customer = self.require_customer(customer_id)

        email = normalize_email(email)
        owner = self.get_customer_by_email(email)
        if owner and owner.id != customer.id:
            raise DuplicateEmail(f"Customer with email {email} already exists")

        if not EMAIL_PATTERN.match(email):
            raise InvalidEmail(f"Invalid email format: {email!r}")

        customer.first_name = first_name
        customer.last_name = last_name
        customer.email = email
        customer.updated_at = datetime.now(timezone.utc)

        self.table.update(customer)
        self.store.commit(self.table)

        log_action(
            self.logger, "info", "Customer details updated",
            action="update_customer", resource=f"customer:{customer.id}"
        )
        return customer
