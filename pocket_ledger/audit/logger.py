"""
Audit Logger

DESIGN DECISION: Every user action that changes the ledger is logged.
This provides:
1. Traceability of every balance change
2. Debugging capability
3. User can see history of their interactions

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.services.storage import AuditStorageInterface


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
    2. Audit storage, when one is configured
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
        self._logger = structlog.get_logger("pocket_ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent stored events, newest first. Empty without storage."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit=limit)

    def log_account_created(
        self,
        account_id: str,
        name: str,
        balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            balance=balance,
            correlation_id=correlation_id,
        ))

    def log_account_updated(
        self,
        account_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_updated(
            account_id=account_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    def log_account_deleted(
        self,
        account_id: str,
        name: str,
        dangling_references: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_deleted(
            account_id=account_id,
            name=name,
            dangling_references=dangling_references,
            correlation_id=correlation_id,
        ))

    def log_transaction_recorded(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_transaction_rejected(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_rejected(
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_history_cleared(
        self,
        cleared_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.history_cleared(
            cleared_count=cleared_count,
            correlation_id=correlation_id,
        ))

    def log_stock_price_updated(
        self,
        holding_id: str,
        symbol: str,
        old_price: str,
        new_price: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.stock_price_updated(
            holding_id=holding_id,
            symbol=symbol,
            old_price=old_price,
            new_price=new_price,
            correlation_id=correlation_id,
        ))

    def log_dashboard_reset(
        self,
        window_start: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.dashboard_reset(
            window_start=window_start,
            correlation_id=correlation_id,
        ))

    def log_assistant_parsed(
        self,
        fields: list[str],
        deep_thinking: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.assistant_parsed(
            fields=fields,
            deep_thinking=deep_thinking,
            correlation_id=correlation_id,
        ))

    def log_assistant_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.assistant_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
