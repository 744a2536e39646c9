"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a statement looks wrong
3. History of who changed a client's entries

The audit logger:
- Is async to not block main flow
- Gracefully handles storage failures (the ledger write already happened)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerbook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from ledgerbook.models.ledger import Client, Transaction
from ledgerbook.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # The ledger write already happened; losing the audit row
                # must not turn it into a reported failure.
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_client_created(self, client: Client, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.client_created(
            client_id=client.id,
            client_name=client.client_name,
            correlation_id=correlation_id,
        ))

    async def log_client_updated(self, client: Client, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.client_updated(
            client_id=client.id,
            client_name=client.client_name,
            correlation_id=correlation_id,
        ))

    async def log_client_deleted(
        self,
        client_id: int,
        transactions_deleted: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.client_deleted(
            client_id=client_id,
            transactions_deleted=transactions_deleted,
            correlation_id=correlation_id,
        ))

    async def log_transaction_written(
        self,
        event_type: AuditEventType,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        """Log a create, update or NET completion of an entry."""
        await self.log(AuditEventBuilder.transaction_written(
            event_type=event_type,
            transaction_id=transaction.id,
            client_id=transaction.client_id,
            account=transaction.account,
            debit=str(transaction.debit),
            credit=str(transaction.credit),
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        client_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            client_id=client_id,
            correlation_id=correlation_id,
        ))

    async def log_balances_recalculated(
        self,
        client_id: int,
        updated_count: int,
        closing_balance: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.balances_recalculated(
            client_id=client_id,
            updated_count=updated_count,
            closing_balance=closing_balance,
            correlation_id=correlation_id,
        ))

    async def log_statement_built(
        self,
        client_id: int,
        date_from: str,
        date_to: str,
        row_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.statement_built(
            client_id=client_id,
            date_from=date_from,
            date_to=date_to,
            row_count=row_count,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
        entity_id: Optional[int] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
            entity_id=entity_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller-visible operation (e.g. a client
    delete) and pass it through every step it triggers.
    """
    return uuid4()
