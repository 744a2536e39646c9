"""
In-Memory Storage Implementation

Keeps clients, entries and audit events in dicts. Used by the test suite
and for local runs without any backend configured.

Records are copied on the way in and on the way out, so callers can
never mutate stored state by holding on to a returned model.
"""

from datetime import date
from decimal import Decimal
from itertools import count
from typing import Optional
from uuid import UUID

from ledgerbook.models.audit import AuditEvent
from ledgerbook.models.ledger import (
    Client,
    ClientInput,
    Transaction,
    TransactionInput,
    TransactionUpdate,
)
from ledgerbook.services.storage.interface import (
    AuditStorageInterface,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)


def _in_range(day: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


class InMemoryLedgerStore(LedgerStoreInterface):
    """Dict-backed ledger store."""

    def __init__(self):
        self._clients: dict[int, Client] = {}
        self._transactions: dict[int, Transaction] = {}
        self._client_ids = count(1)
        self._transaction_ids = count(1)
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("Store has been closed")

    async def connect(self) -> None:
        self._closed = False

    async def close(self) -> None:
        self._closed = True

    # Clients

    async def create_client(self, data: ClientInput) -> Client:
        self._check_open()
        client = Client(id=next(self._client_ids), **data.model_dump())
        self._clients[client.id] = client
        return client.model_copy()

    async def get_client(self, client_id: int) -> Optional[Client]:
        self._check_open()
        client = self._clients.get(client_id)
        return client.model_copy() if client else None

    async def update_client(self, client_id: int, data: ClientInput) -> Client:
        self._check_open()
        if client_id not in self._clients:
            raise NotFoundError(f"Client not found: {client_id}")
        updated = self._clients[client_id].model_copy(update=data.model_dump())
        self._clients[client_id] = updated
        return updated.model_copy()

    async def delete_client(self, client_id: int) -> bool:
        self._check_open()
        return self._clients.pop(client_id, None) is not None

    async def list_clients(self) -> list[Client]:
        self._check_open()
        return [self._clients[k].model_copy() for k in sorted(self._clients)]

    async def count_clients(self) -> int:
        self._check_open()
        return len(self._clients)

    # Ledger entries

    async def create_transaction(
        self,
        data: TransactionInput,
        balance: Decimal = Decimal("0.00"),
    ) -> Transaction:
        self._check_open()
        transaction = Transaction(
            id=next(self._transaction_ids),
            balance=balance,
            **data.model_dump(),
        )
        self._transactions[transaction.id] = transaction
        return transaction.model_copy()

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        self._check_open()
        transaction = self._transactions.get(transaction_id)
        return transaction.model_copy() if transaction else None

    async def update_transaction(
        self,
        transaction_id: int,
        data: TransactionUpdate,
    ) -> Transaction:
        self._check_open()
        existing = self._transactions.get(transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        # Rebuild through the model so the account rules are re-checked
        updated = Transaction(
            id=existing.id,
            client_id=existing.client_id,
            balance=existing.balance,
            created_at=existing.created_at,
            **data.model_dump(),
        )
        self._transactions[transaction_id] = updated
        return updated.model_copy()

    async def delete_transaction(self, transaction_id: int) -> bool:
        self._check_open()
        return self._transactions.pop(transaction_id, None) is not None

    async def delete_transactions_for_client(self, client_id: int) -> int:
        self._check_open()
        doomed = [k for k, t in self._transactions.items() if t.client_id == client_id]
        for k in doomed:
            del self._transactions[k]
        return len(doomed)

    async def get_transactions_for_client(
        self,
        client_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        self._check_open()
        found = [
            t.model_copy()
            for t in self._transactions.values()
            if t.client_id == client_id and _in_range(t.entry_date, date_from, date_to)
        ]
        found.sort(key=lambda t: t.ledger_key)
        return found

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        self._check_open()
        found = [
            t.model_copy()
            for t in self._transactions.values()
            if _in_range(t.entry_date, date_from, date_to)
        ]
        found.sort(key=lambda t: t.ledger_key, reverse=True)
        return found

    async def get_recent_transactions(self, limit: int = 10) -> list[Transaction]:
        self._check_open()
        newest = sorted(self._transactions, reverse=True)[:limit]
        return [self._transactions[k].model_copy() for k in newest]

    async def persist_balances(
        self,
        client_id: int,
        balances: list[tuple[int, Decimal]],
    ) -> None:
        self._check_open()
        # Validate the whole batch before touching anything
        for transaction_id, _ in balances:
            existing = self._transactions.get(transaction_id)
            if existing is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            if existing.client_id != client_id:
                raise StorageError(
                    f"Transaction {transaction_id} belongs to client "
                    f"{existing.client_id}, not {client_id}"
                )
        for transaction_id, balance in balances:
            self._transactions[transaction_id] = self._transactions[transaction_id].model_copy(
                update={"balance": balance}
            )


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
