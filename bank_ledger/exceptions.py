"""
Ledger Exceptions

Error taxonomy for the ledger engine. Business-rule failures are also
ValueErrors and lookup misses are also LookupErrors, so callers that catch
the builtin types keep working.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class ValidationError(LedgerError, ValueError):
    """Raised when an operation's input breaks a business rule."""


class InvalidAmount(ValidationError):
    """Raised for a non-positive or unparseable monetary amount."""


class InsufficientFunds(ValidationError):
    """Raised when a withdrawal or transfer exceeds the available balance."""


class InvalidInterestRate(ValidationError):
    """Raised for a negative interest rate."""


class InvalidAccountKind(ValidationError):
    """Raised for an unknown account kind, or a savings-only operation on a current account."""


class InvalidEmail(ValidationError):
    """Raised when an email address is malformed."""


class SelfTransferNotAllowed(ValidationError):
    """Raised when a transfer names the same account on both sides."""


class NotFoundError(LedgerError, LookupError):
    """Base class for lookup misses."""


class RecordNotFound(NotFoundError):
    """Raised when a table has no record with the given key."""


class AccountNotFound(NotFoundError):
    """Raised when no account has the given account number."""


class CustomerNotFound(NotFoundError):
    """Raised when no customer matches the given id or email."""


class DuplicateError(LedgerError):
    """Base class for uniqueness violations."""


class DuplicateKey(DuplicateError):
    """Raised when a table already holds a record with the same key."""


class DuplicateEmail(DuplicateError):
    """Raised when an email is already registered to another customer."""


class DuplicateAccountKind(DuplicateError):
    """Raised when a customer already holds an account of the requested kind."""


class StorageError(LedgerError):
    """Base class for persistence failures."""


class StorageCorrupt(StorageError):
    """Raised when a backing file cannot be parsed into records."""


class StorageWriteFailed(StorageError):
    """Raised when writing a backing file fails. The previous file is left intact."""
