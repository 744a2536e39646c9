"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger math decoupled from storage implementation

The store is a dumb record keeper. It does NOT cascade deletes, compute
balances or apply account rules; the service layer owns all of that.
The one computed thing a store accepts is a batch of recalculated
balances, which it must apply all-or-nothing.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from ledgerbook.models.ledger import (
    Client,
    ClientInput,
    Transaction,
    TransactionInput,
    TransactionUpdate,
)
from ledgerbook.models.audit import AuditEvent


class LedgerStoreInterface(ABC):
    """
    Abstract interface for client and ledger entry storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Ids are integers assigned by the
    store in increasing insertion order.
    """

    async def connect(self) -> None:
        """Open backend resources. Called once at service start."""

    async def close(self) -> None:
        """Release backend resources. Called once at shutdown."""

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_client(self, data: ClientInput) -> Client:
        """
        Store a new client and assign its id.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_client(self, client_id: int) -> Optional[Client]:
        """
        Retrieve a client by id.

        Returns:
            The client if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_client(self, client_id: int, data: ClientInput) -> Client:
        """
        Replace a client's mutable fields.

        Raises:
            NotFoundError: If client doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_client(self, client_id: int) -> bool:
        """
        Delete the client row only.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def list_clients(self) -> list[Client]:
        """All clients, in id order."""
        pass

    async def count_clients(self) -> int:
        return len(await self.list_clients())

    async def get_client_opening_balance(self, client_id: int) -> Decimal:
        """
        Raises:
            NotFoundError: If client doesn't exist
        """
        client = await self.get_client(client_id)
        if client is None:
            raise NotFoundError(f"Client not found: {client_id}")
        return client.opening_balance

    # ------------------------------------------------------------------
    # Ledger entries
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_transaction(
        self,
        data: TransactionInput,
        balance: Decimal = Decimal("0.00"),
    ) -> Transaction:
        """
        Store a new entry and assign its id.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """
        Retrieve an entry by id.

        Returns:
            The entry if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: int,
        data: TransactionUpdate,
    ) -> Transaction:
        """
        Replace an entry's mutable fields. client_id and id never change.

        Raises:
            NotFoundError: If entry doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def delete_transactions_for_client(self, client_id: int) -> int:
        """
        Delete every entry owned by a client.

        Returns:
            Number of entries deleted
        """
        pass

    @abstractmethod
    async def get_transactions_for_client(
        self,
        client_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        A client's entries in ledger order (entry_date ASC, id ASC).

        Args:
            client_id: Owning client
            date_from: Only entries on or after this date
            date_to: Only entries on or before this date
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """All entries, newest first (entry_date DESC, id DESC)."""
        pass

    @abstractmethod
    async def get_recent_transactions(self, limit: int = 10) -> list[Transaction]:
        """Most recently inserted entries, newest first."""
        pass

    @abstractmethod
    async def persist_balances(
        self,
        client_id: int,
        balances: list[tuple[int, Decimal]],
    ) -> None:
        """
        Write recalculated balances for one client's entries.

        All-or-nothing: if any id is unknown or belongs to another client,
        nothing is written.

        Raises:
            NotFoundError: If an entry id is unknown
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one operation, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """Events for one client or entry, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
