"""
Main Orchestrator for Pocket Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger operations (accounts, transactions, prices, dashboard window)
2. Assistant entry (text → draft → form → validate → record)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is recorded without passing validation
- The assistant only ever produces a draft, never a transaction
- Every state change is committed as one unit and audited

Storage is written before the in-memory state is replaced, so a failed
write leaves the service exactly as it was.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from pocket_ledger.agents import AssistantError, TransactionEntryAgent
from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import Settings, get_settings
from pocket_ledger.models.ledger import (
    Account,
    AccountType,
    LedgerState,
    StockHolding,
    TransactionBase,
    TransactionDraft,
    ValidationResult,
    ensure_aware,
    utc_now,
)
from pocket_ledger.queries import (
    DashboardSummary,
    HistoryEntry,
    PortfolioSummary,
    build_dashboard,
    build_history,
    summarize_portfolio,
)
from pocket_ledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryBackend,
    JsonFileBackend,
    KeyValueAuditStorage,
    KeyValueBackend,
    KeyValueLedgerStore,
    LedgerStorageInterface,
    StorageError,
)
from pocket_ledger.validation import (
    TransactionBuildError,
    TransactionValidator,
    build_transaction,
)


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base error for ledger operations."""
    pass


class AccountNotFoundError(LedgerError):
    """Raised when an account id is not in the ledger."""
    pass


class HoldingNotFoundError(LedgerError):
    """Raised when a stock holding id is not in the ledger."""
    pass


class LedgerService:
    """
    Owns the ledger state and exposes every user-facing operation.

    Flow for recording a transaction:
    1. Validate → Two-stage validation against the current state
    2. Build → Draft becomes the matching transaction variant
    3. Apply → Ledger engine updates balances and holdings
    4. Commit → One write for the whole state
    5. Audit → Recorded or rejected

    A rejected draft leaves state untouched.
    """

    def __init__(
        self,
        store: LedgerStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._state = store.load_state()

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def accounts(self) -> list[Account]:
        return list(self._state.accounts)

    @property
    def stock_holdings(self) -> list[StockHolding]:
        return list(self._state.stock_holdings)

    @property
    def transactions(self) -> list[TransactionBase]:
        return list(self._state.transactions)

    def reload(self) -> LedgerState:
        """Re-read the state from storage."""
        self._state = self._store.load_state()
        return self._state

    def _commit(
        self,
        state: LedgerState,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        try:
            self._store.commit(state)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_storage_error(
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        self._state = state

    def _require_account(self, account_id: str) -> Account:
        account = self._state.find_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {account_id}")
        return account

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def create_account(
        self,
        name: str,
        account_type: Union[AccountType, str] = AccountType.BANK,
        balance: Union[Decimal, str, int, float] = Decimal("0"),
        color: Optional[str] = None,
    ) -> Account:
        """
        Add an account with an opening balance.

        Raises:
            pydantic.ValidationError: If the name is empty or a value is invalid
        """
        correlation_id = create_correlation_id()

        account = Account(
            name=name,
            type=account_type,
            balance=Decimal(str(balance)),
            color=color,
        )
        self._commit(
            self._state.model_copy(update={"accounts": [*self._state.accounts, account]}),
            operation="create_account",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_account_created(
                account_id=account.id,
                name=account.name,
                balance=str(account.balance),
                correlation_id=correlation_id,
            )

        return account

    def edit_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        account_type: Optional[Union[AccountType, str]] = None,
        balance: Optional[Union[Decimal, str, int, float]] = None,
        color: Optional[str] = None,
    ) -> Account:
        """
        Change an account's name, type, balance or colour.

        Editing the balance directly is a correction and is not recorded
        as a transaction.

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        correlation_id = create_correlation_id()
        account = self._require_account(account_id)

        changes = {}
        if name is not None:
            changes["name"] = name
        if account_type is not None:
            changes["type"] = account_type
        if balance is not None:
            changes["balance"] = Decimal(str(balance))
        if color is not None:
            changes["color"] = color

        updated = Account.model_validate({**account.model_dump(), **changes})
        accounts = [updated if a.id == account_id else a for a in self._state.accounts]
        self._commit(
            self._state.model_copy(update={"accounts": accounts}),
            operation="edit_account",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_account_updated(
                account_id=account_id,
                changes={key: str(value) for key, value in changes.items()},
                correlation_id=correlation_id,
            )

        return updated

    def delete_account(self, account_id: str) -> Account:
        """
        Remove an account.

        Transactions that reference it are kept as they are; the history
        shows the missing account as "Unknown".

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        correlation_id = create_correlation_id()
        account = self._require_account(account_id)

        dangling = sum(
            1 for t in self._state.transactions
            if account_id in (t.source_account_id, t.destination_account_id)
        )
        accounts = [a for a in self._state.accounts if a.id != account_id]
        self._commit(
            self._state.model_copy(update={"accounts": accounts}),
            operation="delete_account",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_account_deleted(
                account_id=account_id,
                name=account.name,
                dangling_references=dangling,
                correlation_id=correlation_id,
            )

        return account

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def validate_draft(self, draft: TransactionDraft) -> tuple[ValidationResult, str]:
        """
        Validate a draft against the current state without recording it.

        Returns:
            (validation_result, user_message)
        """
        result = self._validator.validate(
            draft,
            self._state.accounts,
            self._state.stock_holdings,
        )
        return result, self._validator.get_user_friendly_summary(result)

    def record_transaction(
        self,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[TransactionBase], ValidationResult, str]:
        """
        Validate, build, apply and commit one transaction.

        Returns:
            (transaction, validation_result, user_message)

        If validation fails, transaction is None, the message is the
        blocking error and the state is unchanged.
        """
        correlation_id = correlation_id or create_correlation_id()
        now = ensure_aware(now) if now else utc_now()

        result = self._validator.validate(
            draft,
            self._state.accounts,
            self._state.stock_holdings,
            today=now.date(),
        )
        message = self._validator.get_user_friendly_summary(result)

        if not result.is_valid:
            if self._audit_logger:
                self._audit_logger.log_transaction_rejected(
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in result.errors
                    ],
                    correlation_id=correlation_id,
                )
            return None, result, message

        try:
            transaction = build_transaction(draft, now=now)
        except TransactionBuildError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="transaction_build",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        self._commit(
            self._state.apply(transaction),
            operation="record_transaction",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_transaction_recorded(
                transaction_id=transaction.id,
                transaction_type=transaction.type,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )

        return transaction, result, message

    def clear_transaction_history(self) -> int:
        """
        Forget every recorded transaction.

        Balances and holdings keep their current values.

        Returns:
            Number of transactions removed
        """
        correlation_id = create_correlation_id()
        cleared = len(self._state.transactions)

        self._commit(
            self._state.model_copy(update={"transactions": []}),
            operation="clear_transaction_history",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_history_cleared(
                cleared_count=cleared,
                correlation_id=correlation_id,
            )

        return cleared

    # =========================================================================
    # STOCKS
    # =========================================================================

    def update_stock_price(
        self,
        holding_id: str,
        price: Union[Decimal, str, int, float],
    ) -> StockHolding:
        """
        Set the current market price of a holding.

        Raises:
            HoldingNotFoundError: If the holding does not exist
            ValueError: If the price is negative
        """
        correlation_id = create_correlation_id()
        price = Decimal(str(price))
        if price < 0:
            raise ValueError("Price cannot be negative")

        holding = next(
            (h for h in self._state.stock_holdings if h.id == holding_id),
            None,
        )
        if holding is None:
            raise HoldingNotFoundError(f"Holding not found: {holding_id}")

        updated = holding.model_copy(update={"current_price": price})
        holdings = [
            updated if h.id == holding_id else h
            for h in self._state.stock_holdings
        ]
        self._commit(
            self._state.model_copy(update={"stock_holdings": holdings}),
            operation="update_stock_price",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_stock_price_updated(
                holding_id=holding_id,
                symbol=holding.symbol,
                old_price=str(holding.current_price),
                new_price=str(price),
                correlation_id=correlation_id,
            )

        return updated

    # =========================================================================
    # DASHBOARD WINDOW
    # =========================================================================

    def reset_dashboard_window(self, now: Optional[datetime] = None) -> datetime:
        """
        Start a "New Day": income and expense totals restart from now.

        Returns:
            The new window start
        """
        correlation_id = create_correlation_id()
        start = ensure_aware(now) if now else utc_now()

        self._commit(
            self._state.model_copy(update={"dashboard_start": start}),
            operation="reset_dashboard_window",
            correlation_id=correlation_id,
        )

        if self._audit_logger:
            self._audit_logger.log_dashboard_reset(
                window_start=start,
                correlation_id=correlation_id,
            )

        return start

    # =========================================================================
    # READ-SIDE VIEWS
    # =========================================================================

    def dashboard(self) -> DashboardSummary:
        return build_dashboard(
            self._state.accounts,
            self._state.transactions,
            self._state.stock_holdings,
            self._state.dashboard_start,
        )

    def portfolio(self) -> PortfolioSummary:
        return summarize_portfolio(self._state.stock_holdings)

    def history(self) -> list[HistoryEntry]:
        return build_history(self._state.transactions, self._state.accounts)


class AssistantFlow:
    """
    Orchestrates the assistant entry flow.

    Flow:
    1. User describes a transaction in plain words
    2. Agent returns a TransactionDraft
    3. Draft pre-fills the entry form (PAUSE - user reviews and edits)
    4. Form submit goes through LedgerService.record_transaction

    The assistant never records anything itself.
    """

    def __init__(
        self,
        agent: Optional[TransactionEntryAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent or TransactionEntryAgent()
        self._audit_logger = audit_logger

    async def transcribe(
        self,
        text: str,
        accounts: list[Account],
        deep_thinking: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionDraft:
        """
        Turn a description into a draft for the entry form.

        Raises:
            AssistantError: With a message safe to show to the user
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            draft = await self._agent.parse_transaction(
                text,
                accounts,
                deep_thinking=deep_thinking,
            )
        except AssistantError as e:
            if self._audit_logger:
                self._audit_logger.log_assistant_failed(
                    error_message=str(e.cause or e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_assistant_parsed(
                fields=sorted(draft.model_dump(exclude_defaults=True)),
                deep_thinking=deep_thinking,
                correlation_id=correlation_id,
            )

        return draft


def create_backends(
    settings: Settings,
) -> tuple[KeyValueBackend, AuditStorageInterface]:
    """
    Build the ledger backend and audit storage for the configured backend.

    Returns:
        (ledger_backend, audit_storage)
    """
    storage_settings = settings.storage
    app_settings = settings.app

    if storage_settings.backend == "sheets":
        client = GoogleSheetsClient(settings.google_sheets)
        return GoogleSheetsBackend(client), GoogleSheetsAuditStorage(client)

    if storage_settings.backend == "memory":
        backend = InMemoryBackend()
    else:
        backend = JsonFileBackend(storage_settings.data_path)

    return backend, KeyValueAuditStorage(backend, limit=app_settings.audit_log_limit)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[LedgerService, Optional[AssistantFlow]]:
    """
    Factory function to create all application components.

    The assistant is optional: without a Gemini API key the rest of the
    app works and the assistant is None.

    Returns:
        (ledger_service, assistant_flow)
    """
    settings = settings or get_settings()
    app_settings = settings.app

    backend, audit_storage = create_backends(settings)
    audit_logger = AuditLogger(audit_storage)

    store = KeyValueLedgerStore(backend)
    if app_settings.seed_default_accounts:
        store.seed_defaults()

    service = LedgerService(
        store,
        validator=TransactionValidator(app_settings),
        audit_logger=audit_logger,
    )

    try:
        agent = TransactionEntryAgent(settings.gemini)
        assistant = AssistantFlow(agent, audit_logger)
    except Exception as e:
        # Gemini not configured - continue without the assistant
        logger.warning("assistant_unavailable", error=str(e))
        assistant = None

    return service, assistant
