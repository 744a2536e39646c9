"""Shared fixtures: in-memory stores and flows wired the way create_app_components does."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from ledgerbook.audit import AuditLogger
from ledgerbook.config import AppSettings
from ledgerbook.models import Client, Transaction
from ledgerbook.orchestrator import ClientLockRegistry, LedgerFlow, ReportFlow
from ledgerbook.services.storage import InMemoryAuditStorage, InMemoryLedgerStore


def make_client(client_id: int = 1, name: str = "Ramesh Traders", opening: str = "0.00", **kwargs) -> Client:
    return Client(
        id=client_id,
        client_name=name,
        opening_balance=Decimal(opening),
        **kwargs,
    )


def make_txn(
    txn_id: int,
    day: date,
    debit: str = "0.00",
    credit: str = "0.00",
    account: str = "Cash",
    client_id: int = 1,
    particulars: str = "",
) -> Transaction:
    return Transaction(
        id=txn_id,
        client_id=client_id,
        entry_date=day,
        account=account,
        particulars=particulars,
        debit=Decimal(debit),
        credit=Decimal(credit),
    )


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        storage_backend="memory",
        auto_recalculate_balances=True,
        recent_transactions_limit=10,
        max_transaction_amount=Decimal("1000000.00"),
    )


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest_asyncio.fixture
async def flows(store, audit_storage, app_settings):
    """(ledger_flow, report_flow) sharing one store, audit log and lock registry."""
    await store.connect()
    audit_logger = AuditLogger(audit_storage)
    locks = ClientLockRegistry()
    ledger = LedgerFlow(store, audit_logger=audit_logger, locks=locks, settings=app_settings)
    reports = ReportFlow(store, audit_logger=audit_logger, locks=locks, settings=app_settings)
    yield ledger, reports
    await store.close()
