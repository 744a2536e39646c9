"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. Shop owners can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a shop ledger is small)
- No transactions. Recalculated balances go out in ONE batch_update
  call so a failure leaves every stored balance untouched.
- Limited query capabilities (we filter in Python)

Only connection setup and reads are retried. Writes are never retried:
a repeated read-modify-write could apply twice.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgerbook.config import GoogleSheetsSettings, get_settings
from ledgerbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from ledgerbook.models.ledger import (
    Client,
    ClientInput,
    Transaction,
    TransactionInput,
    TransactionUpdate,
    to_money,
)
from ledgerbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)


CLIENT_COLUMNS = [
    "id",
    "client_name",
    "shop_name",
    "mobile_number",
    "city",
    "opening_balance",
    "created_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "client_id",
    "entry_date",
    "account",
    "particulars",
    "debit",
    "credit",
    "balance",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

META_COLUMNS = ["key", "value"]

BALANCE_COLUMN = TRANSACTION_COLUMNS.index("balance") + 1


def _safe_getter(row: list) -> Callable[..., str]:
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API reads.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def disconnect(self) -> None:
        self._client = None
        self._spreadsheet = None

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_clients_sheet(self) -> gspread.Worksheet:
        """Get or create the Clients worksheet."""
        return self._get_or_create(self._settings.clients_sheet_name, CLIENT_COLUMNS, 1000)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)

    def get_meta_sheet(self) -> gspread.Worksheet:
        """Get or create the worksheet holding id counters."""
        return self._get_or_create(self._settings.meta_sheet_name, META_COLUMNS, 10)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def read_rows(self, sheet: gspread.Worksheet) -> list[list[str]]:
        """All data rows of a sheet, header excluded."""
        return sheet.get_all_values()[1:]


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    One client per row on the Clients sheet, one entry per row on the
    Transactions sheet. Ids come from per-sheet counters on the Meta
    sheet and are never reused.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def connect(self) -> None:
        self._client.connect()
        self._client.get_clients_sheet()
        self._client.get_transactions_sheet()

    async def close(self) -> None:
        self._client.disconnect()

    # Row conversion

    def _client_to_row(self, client: Client) -> list:
        return [
            str(client.id),
            client.client_name,
            client.shop_name or "",
            client.mobile_number or "",
            client.city or "",
            str(client.opening_balance),
            client.created_at.isoformat(),
        ]

    def _row_to_client(self, row: list) -> Client:
        safe_get = _safe_getter(row)
        return Client(
            id=int(safe_get(0)),
            client_name=safe_get(1),
            shop_name=safe_get(2) or None,
            mobile_number=safe_get(3) or None,
            city=safe_get(4) or None,
            opening_balance=to_money(safe_get(5, "0.00")),
            created_at=datetime.fromisoformat(safe_get(6)),
        )

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            str(transaction.client_id),
            transaction.entry_date.isoformat(),
            transaction.account,
            transaction.particulars,
            str(transaction.debit),
            str(transaction.credit),
            str(transaction.balance),
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=int(safe_get(0)),
            client_id=int(safe_get(1)),
            entry_date=date.fromisoformat(safe_get(2)),
            account=safe_get(3),
            particulars=safe_get(4),
            debit=to_money(safe_get(5, "0.00")),
            credit=to_money(safe_get(6, "0.00")),
            balance=to_money(safe_get(7, "0.00")),
            created_at=datetime.fromisoformat(safe_get(8)),
        )

    def _next_id(self, key: str, rows: list[list[str]]) -> int:
        """
        Allocate an id that has never been handed out for this sheet.

        The high-water mark lives on the Meta sheet and never goes down,
        so deleting the newest row cannot free its id. Sheets that predate
        the counter fall back to max(existing id).
        """
        meta = self._client.get_meta_sheet()
        meta_rows = self._client.read_rows(meta)
        counter_idx = self._find_row_index(meta_rows, key)

        issued = max((int(row[0]) for row in rows if row and row[0]), default=0)
        if counter_idx is not None:
            stored = _safe_getter(meta_rows[counter_idx - 2])(1, "0")
            issued = max(issued, int(stored))

        new_id = issued + 1
        # Counter first: a failed row write then only skips an id
        if counter_idx is None:
            meta.append_row([key, str(new_id)], value_input_option="RAW")
        else:
            meta.update(
                range_name=f"A{counter_idx}",
                values=[[key, str(new_id)]],
                value_input_option="RAW",
            )
        return new_id

    @staticmethod
    def _find_row_index(rows: list[list[str]], entity_id: Union[int, str]) -> Optional[int]:
        """1-based sheet row number for an id (row 1 is the header)."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == str(entity_id):
                return idx
        return None

    def _load_clients(self) -> list[Client]:
        rows = self._client.read_rows(self._client.get_clients_sheet())
        return [self._row_to_client(row) for row in rows if row and row[0]]

    def _load_transactions(self) -> list[Transaction]:
        rows = self._client.read_rows(self._client.get_transactions_sheet())
        return [self._row_to_transaction(row) for row in rows if row and row[0]]

    # Clients

    async def create_client(self, data: ClientInput) -> Client:
        try:
            sheet = self._client.get_clients_sheet()
            rows = self._client.read_rows(sheet)
            client = Client(id=self._next_id("clients", rows), **data.model_dump())
            sheet.append_row(self._client_to_row(client), value_input_option="RAW")
            return client
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save client: {e}")

    async def get_client(self, client_id: int) -> Optional[Client]:
        try:
            for client in self._load_clients():
                if client.id == client_id:
                    return client
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get client: {e}")

    async def update_client(self, client_id: int, data: ClientInput) -> Client:
        try:
            sheet = self._client.get_clients_sheet()
            rows = self._client.read_rows(sheet)
            idx = self._find_row_index(rows, client_id)
            if idx is None:
                raise NotFoundError(f"Client not found: {client_id}")
            existing = self._row_to_client(rows[idx - 2])
            updated = existing.model_copy(update=data.model_dump())
            sheet.update(
                range_name=f"A{idx}",
                values=[self._client_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update client: {e}")

    async def delete_client(self, client_id: int) -> bool:
        try:
            sheet = self._client.get_clients_sheet()
            idx = self._find_row_index(self._client.read_rows(sheet), client_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete client: {e}")

    async def list_clients(self) -> list[Client]:
        try:
            return sorted(self._load_clients(), key=lambda c: c.id)
        except Exception as e:
            raise StorageError(f"Failed to list clients: {e}")

    # Ledger entries

    async def create_transaction(
        self,
        data: TransactionInput,
        balance: Decimal = Decimal("0.00"),
    ) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._client.read_rows(sheet)
            transaction = Transaction(
                id=self._next_id("transactions", rows),
                balance=balance,
                **data.model_dump(),
            )
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
            return transaction
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        try:
            for transaction in self._load_transactions():
                if transaction.id == transaction_id:
                    return transaction
            return None
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def update_transaction(
        self,
        transaction_id: int,
        data: TransactionUpdate,
    ) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._client.read_rows(sheet)
            idx = self._find_row_index(rows, transaction_id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            existing = self._row_to_transaction(rows[idx - 2])
            updated = Transaction(
                id=existing.id,
                client_id=existing.client_id,
                balance=existing.balance,
                created_at=existing.created_at,
                **data.model_dump(),
            )
            sheet.update(
                range_name=f"A{idx}",
                values=[self._transaction_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: int) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row_index(self._client.read_rows(sheet), transaction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def delete_transactions_for_client(self, client_id: int) -> int:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._client.read_rows(sheet)
            doomed = [
                idx for idx, row in enumerate(rows, start=2)
                if len(row) > 1 and row[1] == str(client_id)
            ]
            # Bottom-up so earlier row numbers stay valid
            for idx in reversed(doomed):
                sheet.delete_rows(idx)
            return len(doomed)
        except Exception as e:
            raise StorageError(f"Failed to delete client transactions: {e}")

    async def get_transactions_for_client(
        self,
        client_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        try:
            found = []
            for transaction in self._load_transactions():
                if transaction.client_id != client_id:
                    continue
                if date_from and transaction.entry_date < date_from:
                    continue
                if date_to and transaction.entry_date > date_to:
                    continue
                found.append(transaction)
            found.sort(key=lambda t: t.ledger_key)
            return found
        except Exception as e:
            raise StorageError(f"Failed to get client transactions: {e}")

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        try:
            found = [
                t for t in self._load_transactions()
                if (not date_from or t.entry_date >= date_from)
                and (not date_to or t.entry_date <= date_to)
            ]
            found.sort(key=lambda t: t.ledger_key, reverse=True)
            return found
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def get_recent_transactions(self, limit: int = 10) -> list[Transaction]:
        try:
            transactions = sorted(self._load_transactions(), key=lambda t: t.id, reverse=True)
            return transactions[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get recent transactions: {e}")

    async def persist_balances(
        self,
        client_id: int,
        balances: list[tuple[int, Decimal]],
    ) -> None:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._client.read_rows(sheet)
            positions = {
                row[0]: (idx, row[1] if len(row) > 1 else "")
                for idx, row in enumerate(rows, start=2)
                if row and row[0]
            }

            updates = []
            for transaction_id, balance in balances:
                found = positions.get(str(transaction_id))
                if found is None:
                    raise NotFoundError(f"Transaction not found: {transaction_id}")
                idx, owner = found
                if owner != str(client_id):
                    raise StorageError(
                        f"Transaction {transaction_id} belongs to client {owner}, not {client_id}"
                    )
                updates.append({
                    "range": rowcol_to_a1(idx, BALANCE_COLUMN),
                    "values": [[str(balance)]],
                })

            if updates:
                sheet.batch_update(updates, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to persist balances: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=int(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def _load_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.read_rows(self._client.get_audit_sheet()):
            if row and row[0]:
                events.append(self._row_to_event(row))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._load_events() if e.correlation_id == correlation_id]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._load_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = sorted(self._load_events(), key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
