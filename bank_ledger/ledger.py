"""
Ledger Store

Owns the three persisted tables (customers, accounts, transactions), each
bound to its own JSON file in one data directory, and commits any set of
them as a single all-or-nothing batch.

A batch commit writes every table to a temp file, then records the pending
renames in a commit manifest, then renames each temp file over its target,
then deletes the manifest. A crash before the manifest exists leaves every
old file in place. A crash after it is rolled forward by recover() on the
next start. Either way all tables reflect the same commit.
"""

import json
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .accounts import Account
from .config import LedgerConfig, get_config
from .customers import Customer
from .exceptions import StorageCorrupt, StorageWriteFailed
from .logging_config import get_logger
from .storage import PersistedTable, discard, write_file
from .transactions import Transaction


MANIFEST_NAME = "_commit.json"


class LedgerStore:
    """
    The bank's tables and their file bindings
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self.data_dir = Path(data_dir if data_dir is not None else self.config.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger("bank_ledger.ledger")

        # Serializes in-process callers for the span of one operation
        self.lock = threading.RLock()

        self.recover()

        indent = self.config.json_indent
        self.customers: PersistedTable[Customer] = PersistedTable(
            "customers", Customer, self.data_dir, key_field="id", indent=indent
        )
        self.accounts: PersistedTable[Account] = PersistedTable(
            "accounts", Account, self.data_dir, key_field="account_number", indent=indent
        )
        self.transactions: PersistedTable[Transaction] = PersistedTable(
            "transactions", Transaction, self.data_dir, key_field="id", indent=indent
        )

    @property
    def tables(self) -> Tuple[PersistedTable, ...]:
        return (self.customers, self.accounts, self.transactions)

    @property
    def manifest_path(self) -> Path:
        return self.data_dir / MANIFEST_NAME

    def commit(self, *tables: PersistedTable) -> None:
        """
        Write the given tables (all tables if none given) as one batch

        Tables are serialized before anything touches the disk, so a
        serialization failure writes nothing. In-memory state is never
        changed by a commit; after a failure the caller may commit again.

        Raises:
            StorageWriteFailed: If any table cannot be serialized or written
        """
        batch: List[PersistedTable] = []
        for table in tables or self.tables:
            if table not in batch:
                batch.append(table)

        payloads = [(table, table.serialize()) for table in batch]

        manifest_temp = self.manifest_path.with_name(MANIFEST_NAME + ".tmp")
        staged: List[PersistedTable] = []
        try:
            for table, payload in payloads:
                staged.append(table)
                write_file(table.temp_path, payload)

            entries = [{"temp": t.temp_path.name, "target": t.path.name} for t in staged]
            write_file(manifest_temp, json.dumps(entries))
            os.replace(manifest_temp, self.manifest_path)
        except OSError as e:
            for table in staged:
                discard(table.temp_path)
            discard(manifest_temp)
            names = ", ".join(t.name for t in batch)
            raise StorageWriteFailed(f"Commit of {names} failed, previous files kept: {e}") from e

        try:
            self._apply_manifest(entries)
        except OSError as e:
            raise StorageWriteFailed(
                f"Commit interrupted after staging; it will be completed on next start: {e}"
            ) from e

        self.logger.debug(f"Committed tables: {', '.join(t.name for t in batch)}")

    def rollback(self) -> None:
        """
        Drop uncommitted in-memory changes by reloading every table from disk

        A commit left half-renamed is finished first, so the reload sees
        one consistent commit.
        """
        if self.manifest_path.exists():
            self.recover()
        for table in self.tables:
            table.reload()
        self.logger.warning("In-memory tables reset to last commit")

    def recover(self) -> None:
        """
        Finish or discard a commit interrupted by a crash

        Raises:
            StorageCorrupt: If a commit manifest exists but cannot be read
            StorageWriteFailed: If the pending renames cannot be completed
        """
        if self.manifest_path.exists():
            try:
                entries = json.loads(self.manifest_path.read_text(encoding="utf-8"))
                if not isinstance(entries, list) or not all(
                    isinstance(e, dict) and "temp" in e and "target" in e for e in entries
                ):
                    raise ValueError("manifest is not a list of renames")
            except (OSError, ValueError) as e:
                raise StorageCorrupt(f"Unreadable commit manifest {self.manifest_path}: {e}") from e

            try:
                self._apply_manifest(entries)
            except OSError as e:
                raise StorageWriteFailed(f"Cannot complete interrupted commit: {e}") from e
            self.logger.warning(f"Rolled forward interrupted commit of {len(entries)} table(s)")

        for stray in self.data_dir.glob("*.tmp"):
            discard(stray)
            self.logger.warning(f"Discarded uncommitted file {stray.name}")

    def _apply_manifest(self, entries: List[Dict[str, str]]) -> None:
        for entry in entries:
            # Names only; the manifest never points outside the data directory
            temp = self.data_dir / Path(entry["temp"]).name
            target = self.data_dir / Path(entry["target"]).name
            if temp.exists():
                os.replace(temp, target)
        discard(self.manifest_path)
