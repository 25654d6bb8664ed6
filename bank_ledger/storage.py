"""
Storage Backend Module

Provides the record serialization base and the persisted table: a keyed,
in-memory collection of records of one type, loaded from a JSON file at
construction and written back wholesale on commit. All monetary values are
stored as Decimal strings and all timestamps as ISO 8601.
"""

import copy
import json
import os
import typing
from dataclasses import fields, is_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from operator import attrgetter
from pathlib import Path
from typing import (
    Any, Callable, Dict, Generic, Iterator, List, Optional, Type, TypeVar, Union
)

from .currency import Currency
from .exceptions import DuplicateKey, RecordNotFound, StorageCorrupt, StorageWriteFailed
from .logging_config import get_logger


logger = get_logger("bank_ledger.storage")


def to_storage_value(value: Any) -> Any:
    """Convert a Python value to its JSON-friendly storage form"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Currency):
        return value.code
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_storage_value(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {k: to_storage_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_storage_value(v) for v in value]
    return value


def from_storage_value(value: Any, hint: Any) -> Any:
    """Convert a stored value back using the field's type annotation"""
    if value is None:
        return None

    # Optional[X] -> X
    if typing.get_origin(hint) is Union:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        hint = args[0] if len(args) == 1 else Any

    if hint is Decimal:
        return Decimal(str(value))
    if hint is datetime:
        return value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if hint is Currency:
        return Currency.from_code(value)
    if isinstance(hint, type) and issubclass(hint, Enum):
        return hint(value)
    if isinstance(hint, type) and is_dataclass(hint) and isinstance(value, dict):
        if issubclass(hint, StorageRecord):
            return hint.from_dict(value)
        return hint(**value)
    return value


class StorageRecord:
    """
    Base class for all stored records.

    Subclasses are dataclasses declaring their own `id` field, so records
    may be frozen or mutable.
    """
    id: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {f.name: to_storage_value(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        hints = typing.get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            if f.init and f.name in data:
                kwargs[f.name] = from_storage_value(data[f.name], hints.get(f.name, Any))
        return cls(**kwargs)


T = TypeVar("T", bound=StorageRecord)


def write_file(path: Path, text: str) -> None:
    """Write text to path and fsync it before returning"""
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())


def discard(path: Path) -> None:
    """Remove a file if it exists"""
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class PersistedTable(Generic[T]):
    """
    Keyed in-memory collection of one record type backed by a JSON file.

    Records are copied on the way in and on the way out, so a record read
    from the table can be mutated freely; the table only changes when the
    record is handed back through add/update/delete. Nothing is written to
    disk until commit().
    """

    def __init__(
        self,
        name: str,
        record_type: Type[T],
        data_dir: Union[str, Path],
        key_field: str = "id",
        key: Optional[Callable[[T], Any]] = None,
        indent: Optional[int] = 2
    ):
        self.name = name
        self.record_type = record_type
        self.key_field = key_field
        self.path = Path(data_dir) / f"{name}.json"
        self.indent = indent
        self._key = key or attrgetter(key_field)
        self._records: List[T] = []
        self._keys: set = set()
        self._set_records(self.load())

    @property
    def temp_path(self) -> Path:
        """Scratch file a commit writes before replacing the backing file"""
        return self.path.with_name(self.path.name + ".tmp")

    def _set_records(self, records: List[T]) -> None:
        self._records = records
        self._keys = {self.key_of(r) for r in records}

    def key_of(self, record: T) -> Any:
        """Extract the unique key of a record"""
        value = self._key(record)
        if value is None:
            raise ValueError(f"{self.name}: key '{self.key_field}' is None")
        return value

    def load(self) -> List[T]:
        """
        Read records from the backing file.

        A missing or empty file yields an empty list.

        Raises:
            StorageCorrupt: If the file is unreadable, not a JSON array of
                records, or holds duplicate keys
        """
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"{self.name}: no backing file at {self.path}, starting empty")
            return []

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageCorrupt(f"{self.name}: cannot read {self.path}: {e}") from e

        if not text.strip():
            return []

        try:
            rows = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageCorrupt(f"{self.name}: malformed JSON in {self.path}: {e}") from e

        if not isinstance(rows, list):
            raise StorageCorrupt(f"{self.name}: expected a JSON array in {self.path}")

        records = []
        seen = set()
        for position, row in enumerate(rows):
            if not isinstance(row, dict):
                raise StorageCorrupt(f"{self.name}: row {position} is not an object")
            try:
                record = self.record_type.from_dict(row)
                key = self.key_of(record)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                raise StorageCorrupt(f"{self.name}: row {position} is invalid: {e}") from e
            if key in seen:
                raise StorageCorrupt(f"{self.name}: duplicate {self.key_field} {key!r}")
            seen.add(key)
            records.append(record)

        logger.debug(f"{self.name}: loaded {len(records)} records from {self.path}")
        return records

    def reload(self) -> None:
        """Discard in-memory changes and re-read the backing file"""
        self._set_records(self.load())

    def add(self, record: T) -> T:
        """
        Add a new record.

        Raises:
            DuplicateKey: If a record with the same key already exists
        """
        key = self.key_of(record)
        if key in self._keys:
            raise DuplicateKey(
                f"{self.record_type.__name__} with {self.key_field} = {key} already exists"
            )
        self._records.append(copy.deepcopy(record))
        self._keys.add(key)
        return record

    def update(self, record: T) -> T:
        """
        Replace the stored record with the same key.

        Raises:
            RecordNotFound: If no record has that key
        """
        key = self.key_of(record)
        for index, existing in enumerate(self._records):
            if self.key_of(existing) == key:
                self._records[index] = copy.deepcopy(record)
                return record
        raise RecordNotFound(
            f"{self.record_type.__name__} with {self.key_field} = {key} not found"
        )

    def delete(self, record: T) -> int:
        """Remove every record with the same key, returning how many went"""
        key = self.key_of(record)
        before = len(self._records)
        self._records = [r for r in self._records if self.key_of(r) != key]
        self._keys.discard(key)
        return before - len(self._records)

    def get(self, key: Any) -> Optional[T]:
        """Get a record by key"""
        if key not in self._keys:
            return None
        return self.find_one(lambda r: self.key_of(r) == key)

    def find(self, predicate: Callable[[T], bool]) -> List[T]:
        """All records matching predicate, in insertion order"""
        return [copy.deepcopy(r) for r in self._records if predicate(r)]

    def find_one(self, predicate: Callable[[T], bool]) -> Optional[T]:
        """First record matching predicate, or None"""
        for record in self._records:
            if predicate(record):
                return copy.deepcopy(record)
        return None

    @property
    def all(self) -> List[T]:
        """Copy of every record in insertion order"""
        return copy.deepcopy(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all)

    def __contains__(self, key: Any) -> bool:
        return key in self._keys

    def serialize(self) -> str:
        """
        Render the whole table as JSON text.

        Raises:
            StorageWriteFailed: If a record cannot be serialized
        """
        try:
            return json.dumps([r.to_dict() for r in self._records], indent=self.indent)
        except (TypeError, ValueError) as e:
            raise StorageWriteFailed(f"{self.name}: cannot serialize records: {e}") from e

    def commit(self) -> None:
        """
        Write the whole table to its backing file.

        The file is written to a temp file first and then renamed over the
        old one, so a failure leaves the previous contents in place.

        Raises:
            StorageWriteFailed: On serialization or I/O failure
        """
        payload = self.serialize()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_file(self.temp_path, payload)
            os.replace(self.temp_path, self.path)
        except OSError as e:
            discard(self.temp_path)
            raise StorageWriteFailed(f"{self.name}: cannot write {self.path}: {e}") from e

        logger.debug(f"{self.name}: committed {len(self._records)} records to {self.path}")
