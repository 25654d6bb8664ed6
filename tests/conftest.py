"""
Shared fixtures: every test gets its own data directory
"""

import pytest

from bank_ledger.config import LedgerConfig
from bank_ledger.ledger import LedgerStore
from bank_ledger.service import BankService


@pytest.fixture
def config(tmp_path):
    return LedgerConfig(data_dir=str(tmp_path), default_currency="NGN", default_savings_rate="0.05")


@pytest.fixture
def store(config):
    return LedgerStore(config=config)


@pytest.fixture
def service(store, config):
    return BankService(store=store, config=config)
