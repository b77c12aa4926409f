"""
Audit Logger

DESIGN DECISION: Every balance change and every advisory request is logged.
This provides:
1. Traceability of account balances
2. Debugging capability when the advisor misbehaves
3. A history the user can inspect

The audit logger:
- Is async so storage writes are awaited alongside ledger I/O
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface


def configure_logging() -> None:
    """Configure structlog for local JSON logging."""
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
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), when configured
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

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence never breaks a ledger operation
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: int,
        account_id: int,
        amount_minor: int,
        type_label: str,
    ) -> None:
        event = AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            account_id=account_id,
            amount_minor=amount_minor,
            type_label=type_label,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        account_id: int,
        amount_minor: int,
        type_label: str,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            account_id=account_id,
            amount_minor=amount_minor,
            type_label=type_label,
        )
        await self.log(event)

    async def log_transaction_rejected(self, issues: list[dict]) -> None:
        """Log a transaction that failed validation."""
        await self.log(AuditEventBuilder.transaction_rejected(issues))

    async def log_budget_set(self, year: int, month: int, amount_minor: int) -> None:
        await self.log(AuditEventBuilder.budget_set(year, month, amount_minor))

    async def log_ledger_seeded(self, books: int, accounts: int, categories: int) -> None:
        await self.log(AuditEventBuilder.ledger_seeded(books, accounts, categories))

    async def log_analysis_requested(
        self,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_requested(
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_completed(
        self,
        insight_length: int,
        report_length: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_completed(
            insight_length=insight_length,
            report_length=report_length,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_failed(
        self,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log an advisory failure (network, response format or unknown)."""
        event = AuditEventBuilder.analysis_failed(
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(self, operation: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.storage_error(operation, error_message))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an analysis refresh).
    Pass it through all subsequent operations.
    """
    return uuid4()
