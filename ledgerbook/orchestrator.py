"""
Main Orchestrator for Ledger Book

This module ties the store, the ledger engine, validation and the audit
log together, and defines the operations callers use:
1. Ledger writes (clients and entries, balance recalculation)
2. Reports (running ledger, statements, classification, rollups)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every entry is validated and normalized before it reaches the store
- Writes and recalculation for one client are serialized by a per-client
  lock; different clients never wait on each other
- Deleting a client deletes its entries first, under that client's lock
- Store failures are audited and re-raised unchanged; nothing retries
"""

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from ledgerbook.audit import AuditLogger, create_correlation_id
from ledgerbook.config import AppSettings, get_settings
from ledgerbook.engine import (
    aggregate_by_account,
    aggregate_by_date,
    aggregate_by_month,
    balance_pairs,
    build_statement,
    compute_client_balance,
    compute_client_balances,
    compute_running_balances,
    final_balance,
    split_by_balance,
    summarize_date_range,
)
from ledgerbook.models.audit import AuditEventType
from ledgerbook.models.ledger import (
    ZERO,
    AccountTag,
    Client,
    ClientInput,
    Transaction,
    TransactionInput,
    TransactionUpdate,
)
from ledgerbook.models.reports import (
    AccountAggregateRow,
    AggregateRow,
    ClientBalance,
    ClientClassification,
    DateRangeSummary,
    LedgerRow,
    LedgerStatement,
    RecalculationResult,
)
from ledgerbook.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from ledgerbook.validation import (
    LedgerValidationError,
    TransactionValidator,
    validate_date_range,
    validate_limit,
)


class ClientLockRegistry:
    """
    One asyncio.Lock per client id.

    Shared by every flow built from the same store so that a report read
    and a write for the same client cannot interleave.

    A lock exists only while someone holds or waits for it, so ids of
    deleted or unknown clients do not accumulate.
    """

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: Counter = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, client_id: int):
        lock = self._locks.setdefault(client_id, asyncio.Lock())
        self._users[client_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[client_id] -= 1
            if not self._users[client_id]:
                del self._users[client_id]
                del self._locks[client_id]


class LedgerFlow:
    """
    Orchestrates every write to the ledger.

    After each write to a client's entries the client's stored balances
    are recalculated inside the same lock, unless
    auto_recalculate_balances is switched off.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
        locks: Optional[ClientLockRegistry] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator(
            self._settings.max_transaction_amount
        )
        self._locks = locks or ClientLockRegistry()
        self._logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _audit_failure(
        self,
        operation: str,
        error: Exception,
        correlation_id: UUID,
        entity_type: str = "transaction",
        entity_id: Optional[int] = None,
    ) -> None:
        if isinstance(error, LedgerValidationError):
            await self._audit_logger.log_validation_failed(
                entity_type=entity_type,
                issues=error.to_dicts(),
                correlation_id=correlation_id,
                entity_id=entity_id,
            )
        elif isinstance(error, NotFoundError):
            self._logger.info("not_found", operation=operation, error=str(error))
        elif isinstance(error, StorageError):
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _require_client(self, client_id: int) -> Client:
        client = await self._store.get_client(client_id)
        if client is None:
            raise NotFoundError(f"Client not found: {client_id}")
        return client

    async def _require_transaction(self, transaction_id: int) -> Transaction:
        transaction = await self._store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    async def _recalculate_locked(
        self,
        client_id: int,
        correlation_id: UUID,
    ) -> RecalculationResult:
        """Fold and write back. Caller must hold the client's lock."""
        opening = await self._store.get_client_opening_balance(client_id)
        transactions = await self._store.get_transactions_for_client(client_id)
        rows = compute_running_balances(transactions, opening, client_id=client_id)

        # One batch: the store applies all of it or none of it
        await self._store.persist_balances(client_id, balance_pairs(rows))

        closing = final_balance(rows, opening)
        await self._audit_logger.log_balances_recalculated(
            client_id=client_id,
            updated_count=len(rows),
            closing_balance=str(closing),
            correlation_id=correlation_id,
        )
        return RecalculationResult(
            client_id=client_id,
            updated_count=len(rows),
            closing_balance=closing,
        )

    async def _after_write(self, client_id: int, correlation_id: UUID) -> None:
        if self._settings.auto_recalculate_balances:
            await self._recalculate_locked(client_id, correlation_id)

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    async def create_client(
        self,
        data: ClientInput,
        correlation_id: Optional[UUID] = None,
    ) -> Client:
        correlation_id = correlation_id or create_correlation_id()
        try:
            client = await self._store.create_client(data)
        except StorageError as e:
            await self._audit_failure("create_client", e, correlation_id, "client")
            raise

        await self._audit_logger.log_client_created(client, correlation_id)
        return client

    async def get_client(self, client_id: int) -> Client:
        """
        Raises:
            NotFoundError: If client doesn't exist
        """
        return await self._require_client(client_id)

    async def list_clients(self) -> list[Client]:
        return await self._store.list_clients()

    async def count_clients(self) -> int:
        return await self._store.count_clients()

    async def update_client(
        self,
        client_id: int,
        data: ClientInput,
        correlation_id: Optional[UUID] = None,
    ) -> Client:
        """
        Replace a client's fields.

        A changed opening balance shifts every running balance, so the
        client's stored balances are recalculated.
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._locks.hold(client_id):
            try:
                client = await self._store.update_client(client_id, data)
                await self._after_write(client_id, correlation_id)
            except StorageError as e:
                await self._audit_failure("update_client", e, correlation_id, "client", client_id)
                raise

        await self._audit_logger.log_client_updated(client, correlation_id)
        return client

    async def delete_client(
        self,
        client_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete a client and every entry it owns.

        Entries go first, so an entry can never outlive its client even
        if the client delete itself fails.

        Returns:
            Number of entries deleted

        Raises:
            NotFoundError: If client doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._locks.hold(client_id):
            try:
                await self._require_client(client_id)
                removed = await self._store.delete_transactions_for_client(client_id)
                await self._store.delete_client(client_id)
            except StorageError as e:
                await self._audit_failure("delete_client", e, correlation_id, "client", client_id)
                raise

        await self._audit_logger.log_client_deleted(client_id, removed, correlation_id)
        return removed

    # ------------------------------------------------------------------
    # Ledger entries
    # ------------------------------------------------------------------

    async def get_transaction(self, transaction_id: int) -> Transaction:
        """
        Raises:
            NotFoundError: If entry doesn't exist
        """
        return await self._require_transaction(transaction_id)

    async def create_transaction(
        self,
        data: TransactionInput,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate, normalize and store a new entry.

        Raises:
            LedgerValidationError: Input rejected (e.g. Net with a credit)
            NotFoundError: Client doesn't exist
            StorageError: Store failure, propagated unchanged
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            entry = self._validator.validate(data)
        except LedgerValidationError as e:
            await self._audit_failure("create_transaction", e, correlation_id)
            raise

        async with self._locks.hold(entry.client_id):
            try:
                await self._require_client(entry.client_id)
                transaction = await self._store.create_transaction(entry)
                await self._after_write(entry.client_id, correlation_id)
                transaction = await self._require_transaction(transaction.id)
            except StorageError as e:
                await self._audit_failure("create_transaction", e, correlation_id)
                raise

        await self._audit_logger.log_transaction_written(
            AuditEventType.TRANSACTION_CREATED, transaction, correlation_id
        )
        return transaction

    async def _update_locked(
        self,
        existing: Transaction,
        entry: TransactionUpdate,
        correlation_id: UUID,
    ) -> Transaction:
        await self._store.update_transaction(existing.id, entry)
        await self._after_write(existing.client_id, correlation_id)
        return await self._require_transaction(existing.id)

    async def update_transaction(
        self,
        transaction_id: int,
        data: TransactionUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace an entry's date, account, particulars and amounts.

        The same account rules as create apply. The owning client never
        changes.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            existing = await self._require_transaction(transaction_id)
            entry = self._validator.validate(data)
        except (LedgerValidationError, StorageError) as e:
            await self._audit_failure("update_transaction", e, correlation_id, entity_id=transaction_id)
            raise

        async with self._locks.hold(existing.client_id):
            try:
                transaction = await self._update_locked(existing, entry, correlation_id)
            except StorageError as e:
                await self._audit_failure("update_transaction", e, correlation_id, entity_id=transaction_id)
                raise

        await self._audit_logger.log_transaction_written(
            AuditEventType.TRANSACTION_UPDATED, transaction, correlation_id
        )
        return transaction

    async def complete_net_entry(
        self,
        transaction_id: int,
        debit: Decimal,
        particulars: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Turn a No NET placeholder into a Net entry carrying a debit.

        The entry keeps its date and position in the ledger.

        Raises:
            LedgerValidationError: Not a placeholder, debit <= 0 or
                                   blank particulars
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            existing = await self._require_transaction(transaction_id)
            self._validator.validate_net_completion(existing, debit, particulars)
            entry = self._validator.validate(TransactionUpdate(
                entry_date=existing.entry_date,
                account=AccountTag.NET.value,
                particulars=particulars,
                debit=debit,
                credit=ZERO,
            ))
        except (LedgerValidationError, StorageError) as e:
            await self._audit_failure("complete_net_entry", e, correlation_id, entity_id=transaction_id)
            raise

        async with self._locks.hold(existing.client_id):
            try:
                # Re-read under the lock: a concurrent completion may have won
                current = await self._require_transaction(transaction_id)
                self._validator.validate_net_completion(current, debit, particulars)
                transaction = await self._update_locked(current, entry, correlation_id)
            except (LedgerValidationError, StorageError) as e:
                await self._audit_failure("complete_net_entry", e, correlation_id, entity_id=transaction_id)
                raise

        await self._audit_logger.log_transaction_written(
            AuditEventType.NET_ENTRY_COMPLETED, transaction, correlation_id
        )
        return transaction

    async def delete_transaction(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If entry doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._require_transaction(transaction_id)

        async with self._locks.hold(existing.client_id):
            try:
                if not await self._store.delete_transaction(transaction_id):
                    raise NotFoundError(f"Transaction not found: {transaction_id}")
                await self._after_write(existing.client_id, correlation_id)
            except StorageError as e:
                await self._audit_failure("delete_transaction", e, correlation_id, entity_id=transaction_id)
                raise

        await self._audit_logger.log_transaction_deleted(
            transaction_id, existing.client_id, correlation_id
        )

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    async def recalculate_client_balances(
        self,
        client_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> RecalculationResult:
        """
        Rewrite every stored balance of one client from its entries.

        Idempotent: with no writes in between, a second run stores the
        same values. On failure nothing has been written.

        Raises:
            NotFoundError: If client doesn't exist
            StorageError: Store failure, propagated unchanged
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._locks.hold(client_id):
            try:
                return await self._recalculate_locked(client_id, correlation_id)
            except StorageError as e:
                await self._audit_failure("recalculate_client_balances", e, correlation_id, "client", client_id)
                raise


class ReportFlow:
    """
    Orchestrates read-only ledger views.

    Everything here is computed from live entries by the engine; stored
    balance snapshots are never read back into a report.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        locks: Optional[ClientLockRegistry] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._locks = locks or ClientLockRegistry()

    async def _require_client(self, client_id: int) -> Client:
        client = await self._store.get_client(client_id)
        if client is None:
            raise NotFoundError(f"Client not found: {client_id}")
        return client

    # Per-client views

    async def get_client_transactions(self, client_id: int) -> list[Transaction]:
        """A client's entries in ledger order."""
        await self._require_client(client_id)
        return await self._store.get_transactions_for_client(client_id)

    async def get_running_ledger(
        self,
        client_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[LedgerRow]:
        """
        Entries with running balances computed over the full history,
        then narrowed to the optional date bounds.
        """
        if date_from and date_to:
            validate_date_range(date_from, date_to)
        async with self._locks.hold(client_id):
            client = await self._require_client(client_id)
            transactions = await self._store.get_transactions_for_client(client_id)

        rows = compute_running_balances(
            transactions, client.opening_balance, client_id=client_id
        )
        return [
            row for row in rows
            if (not date_from or row.transaction.entry_date >= date_from)
            and (not date_to or row.transaction.entry_date <= date_to)
        ]

    async def build_statement(
        self,
        client_id: int,
        date_from: date,
        date_to: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerStatement:
        """
        Raises:
            NotFoundError: If client doesn't exist
            LedgerValidationError: date_from after date_to
        """
        correlation_id = correlation_id or create_correlation_id()
        validate_date_range(date_from, date_to)
        async with self._locks.hold(client_id):
            client = await self._require_client(client_id)
            transactions = await self._store.get_transactions_for_client(client_id)

        statement = build_statement(client, transactions, date_from, date_to)
        await self._audit_logger.log_statement_built(
            client_id=client_id,
            date_from=date_from.isoformat(),
            date_to=date_to.isoformat(),
            row_count=statement.row_count,
            correlation_id=correlation_id,
        )
        return statement

    async def get_client_with_balance(self, client_id: int) -> ClientBalance:
        client = await self._require_client(client_id)
        transactions = await self._store.get_transactions_for_client(client_id)
        return compute_client_balance(client, transactions)

    # Whole-book views

    async def list_client_balances(self) -> list[ClientBalance]:
        clients = await self._store.list_clients()
        transactions = await self._store.list_transactions()
        return compute_client_balances(clients, transactions)

    async def classify_clients(self) -> ClientClassification:
        return split_by_balance(await self.list_client_balances())

    async def get_debtors(self) -> list[ClientBalance]:
        return (await self.classify_clients()).debtors

    async def get_creditors(self) -> list[ClientBalance]:
        return (await self.classify_clients()).creditors

    async def count_clients(self) -> int:
        return await self._store.count_clients()

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        return await self._store.list_transactions(date_from, date_to)

    async def get_recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        """
        Most recently inserted entries, newest first.

        Raises:
            LedgerValidationError: limit below 1
        """
        if limit is None:
            limit = self._settings.recent_transactions_limit
        validate_limit(limit)
        return await self._store.get_recent_transactions(limit)

    async def aggregate_by_date(self, date_from: date, date_to: date) -> list[AggregateRow]:
        validate_date_range(date_from, date_to)
        transactions = await self._store.list_transactions(date_from, date_to)
        return aggregate_by_date(transactions, date_from, date_to)

    async def aggregate_by_month(self, date_from: date, date_to: date) -> list[AggregateRow]:
        validate_date_range(date_from, date_to)
        transactions = await self._store.list_transactions(date_from, date_to)
        return aggregate_by_month(transactions, date_from, date_to)

    async def aggregate_by_account(self) -> list[AccountAggregateRow]:
        return aggregate_by_account(await self._store.list_transactions())

    async def summarize_date_range(self, date_from: date, date_to: date) -> DateRangeSummary:
        validate_date_range(date_from, date_to)
        transactions = await self._store.list_transactions(date_from, date_to)
        return summarize_date_range(transactions, date_from, date_to)


def create_app_components(
    settings: Optional[AppSettings] = None,
    store: Optional[LedgerStoreInterface] = None,
) -> tuple[LedgerFlow, ReportFlow, LedgerStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        settings: App settings; loaded from the environment if omitted
        store: Pre-built store. If omitted, one is built from
               settings.storage_backend.

    Returns:
        (ledger_flow, report_flow, store)

    The caller owns the store's lifecycle: await store.connect() at
    startup and await store.close() at shutdown.
    """
    settings = settings or get_settings().app

    if store is not None:
        audit_logger = AuditLogger()
    elif settings.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        store = GoogleSheetsLedgerStore(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    else:
        store = InMemoryLedgerStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    locks = ClientLockRegistry()
    ledger_flow = LedgerFlow(
        store=store,
        audit_logger=audit_logger,
        locks=locks,
        settings=settings,
    )
    report_flow = ReportFlow(
        store=store,
        audit_logger=audit_logger,
        locks=locks,
        settings=settings,
    )
    return ledger_flow, report_flow, store
