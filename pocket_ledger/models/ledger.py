"""
Core Data Models for Pocket Ledger

These models define the strict schemas for everything the ledger stores:
accounts, stock holdings and transactions.

DESIGN DECISION: Transactions are a closed tagged union discriminated on
`type`. Each variant declares the account references and stock fields it
requires, so a TRANSFER without a destination or a STOCK_BUY without a
quantity cannot be constructed at all.

Transactions are frozen. Once recorded they are never edited; only the
whole history can be cleared.
"""

from datetime import date as Date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# Text limits shared by the models and the entry validator
MAX_SYMBOL_LENGTH = 20
MAX_NOTES_LENGTH = 1000
MAX_CATEGORY_NAME_LENGTH = 100


def generate_id() -> str:
    """Generate a new opaque entity id."""
    return uuid4().hex


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_today(now: Optional[datetime] = None) -> Date:
    """The UTC calendar day, which is what entry dates are compared against."""
    now = ensure_aware(now) if now else utc_now()
    return now.astimezone(timezone.utc).date()


def default_window_start(now: Optional[datetime] = None) -> datetime:
    """First instant of the calendar month containing `now` (local time by default)."""
    now = ensure_aware(now) if now else datetime.now().astimezone()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


# =============================================================================
# ENUMS
# =============================================================================

class AccountType(str, Enum):
    """
    Kind of account.

    Informational only - the ledger math is the same for every type.
    """
    BANK = "BANK"
    WALLET = "WALLET"
    CASH = "CASH"
    PORTFOLIO = "PORTFOLIO"
    STOCK_PORTFOLIO = "STOCK_PORTFOLIO"


class TransactionType(str, Enum):
    """Kind of financial event. Fixed at creation."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    STOCK_BUY = "STOCK_BUY"
    STOCK_SELL = "STOCK_SELL"


# =============================================================================
# ACCOUNTS AND HOLDINGS
# =============================================================================

class Account(BaseModel):
    """
    A named store of money.

    The balance changes only when a transaction references this account,
    or when the user edits the account directly.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=generate_id,
        min_length=1,
        description="Unique account id"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display label"
    )
    type: AccountType = Field(
        default=AccountType.BANK,
        description="Account type"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Signed balance in the single implicit currency"
    )
    color: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Display colour hint"
    )


class StockHolding(BaseModel):
    """
    An aggregated position in one ticker symbol.

    There is at most one holding per symbol. Holdings whose quantity
    drops to zero are removed, never kept as empty rows.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=generate_id, min_length=1)
    symbol: str = Field(
        ...,
        min_length=1,
        max_length=MAX_SYMBOL_LENGTH,
        description="Ticker symbol (uppercased)"
    )
    name: str = Field(
        default="",
        max_length=100,
        description="Display name, defaults to the symbol"
    )
    quantity: Decimal = Field(
        ...,
        ge=0,
        description="Share count"
    )
    average_buy_price: Decimal = Field(
        ...,
        ge=0,
        description="Weighted-average cost per share"
    )
    current_price: Decimal = Field(
        ...,
        ge=0,
        description="Last manually entered market price per share"
    )

    @field_validator('symbol')
    @classmethod
    def uppercase_symbol(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def default_name(self) -> 'StockHolding':
        if not self.name:
            self.name = self.symbol
        return self

    @property
    def market_value(self) -> Decimal:
        return self.quantity * self.current_price

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.average_buy_price

    @property
    def unrealized_pnl(self) -> Decimal:
        return self.market_value - self.cost_basis

    @property
    def unrealized_pnl_percent(self) -> Optional[Decimal]:
        """P&L as a percentage of cost basis, None when nothing was paid."""
        if self.cost_basis == 0:
            return None
        return self.unrealized_pnl / self.cost_basis * 100


# =============================================================================
# TRANSACTIONS - tagged union
# =============================================================================

class TransactionBase(BaseModel):
    """
    Fields shared by every transaction variant.

    Each variant narrows the optional references below to what it needs
    and lists the fields it must not carry in `_forbidden_fields`.
    """
    # camelCase aliases accept rows saved by older builds; dumps stay snake_case
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    _forbidden_fields: ClassVar[tuple[str, ...]] = ()

    id: str = Field(default_factory=generate_id, min_length=1)
    date: datetime = Field(
        default_factory=utc_now,
        description="When the event happened"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Cash moved; for stock trades, quantity x price"
    )
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    source_account_id: Optional[str] = None
    destination_account_id: Optional[str] = None

    category_id: Optional[str] = None
    category_name: Optional[str] = Field(default=None, max_length=MAX_CATEGORY_NAME_LENGTH)

    stock_symbol: Optional[str] = None
    stock_quantity: Optional[Decimal] = None
    stock_price: Optional[Decimal] = None

    @field_validator('date')
    @classmethod
    def make_date_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @model_validator(mode='after')
    def check_variant_fields(self) -> 'TransactionBase':
        for name in self._forbidden_fields:
            if getattr(self, name) is not None:
                raise ValueError(f"{self.type} transactions cannot set {name}")
        if self.category_id and self.category_name:
            raise ValueError("Use either category_id or category_name, not both")
        return self

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType(self.type)

    @property
    def is_stock_trade(self) -> bool:
        return self.transaction_type in (TransactionType.STOCK_BUY, TransactionType.STOCK_SELL)


_STOCK_FIELDS = ("stock_symbol", "stock_quantity", "stock_price")
_CATEGORY_FIELDS = ("category_id", "category_name")


class IncomeTransaction(TransactionBase):
    """Money arriving in an account."""
    _forbidden_fields: ClassVar[tuple[str, ...]] = ("source_account_id",) + _STOCK_FIELDS

    type: Literal["INCOME"] = "INCOME"
    destination_account_id: str = Field(..., min_length=1)


class ExpenseTransaction(TransactionBase):
    """Money leaving an account."""
    _forbidden_fields: ClassVar[tuple[str, ...]] = ("destination_account_id",) + _STOCK_FIELDS

    type: Literal["EXPENSE"] = "EXPENSE"
    source_account_id: str = Field(..., min_length=1)


class TransferTransaction(TransactionBase):
    """Money moving between two different accounts."""
    _forbidden_fields: ClassVar[tuple[str, ...]] = _STOCK_FIELDS + _CATEGORY_FIELDS

    type: Literal["TRANSFER"] = "TRANSFER"
    source_account_id: str = Field(..., min_length=1)
    destination_account_id: str = Field(..., min_length=1)

    @model_validator(mode='after')
    def check_distinct_accounts(self) -> 'TransferTransaction':
        if self.source_account_id == self.destination_account_id:
            raise ValueError("Source and destination accounts cannot be the same")
        return self


class _StockTradeFields(TransactionBase):
    stock_symbol: str = Field(..., min_length=1, max_length=MAX_SYMBOL_LENGTH)
    stock_quantity: Decimal = Field(..., gt=0)
    stock_price: Decimal = Field(..., gt=0)

    @field_validator('stock_symbol')
    @classmethod
    def uppercase_symbol(cls, v: str) -> str:
        return v.upper()


class StockBuyTransaction(_StockTradeFields):
    """Shares bought, paid for from a funding account."""
    _forbidden_fields: ClassVar[tuple[str, ...]] = ("destination_account_id",) + _CATEGORY_FIELDS

    type: Literal["STOCK_BUY"] = "STOCK_BUY"
    source_account_id: str = Field(..., min_length=1)


class StockSellTransaction(_StockTradeFields):
    """Shares sold, proceeds paid into an account."""
    _forbidden_fields: ClassVar[tuple[str, ...]] = ("source_account_id",) + _CATEGORY_FIELDS

    type: Literal["STOCK_SELL"] = "STOCK_SELL"
    destination_account_id: str = Field(..., min_length=1)


Transaction = Annotated[
    Union[
        IncomeTransaction,
        ExpenseTransaction,
        TransferTransaction,
        StockBuyTransaction,
        StockSellTransaction,
    ],
    Field(discriminator="type"),
]

TRANSACTION_VARIANTS: dict[TransactionType, type[TransactionBase]] = {
    TransactionType.INCOME: IncomeTransaction,
    TransactionType.EXPENSE: ExpenseTransaction,
    TransactionType.TRANSFER: TransferTransaction,
    TransactionType.STOCK_BUY: StockBuyTransaction,
    TransactionType.STOCK_SELL: StockSellTransaction,
}

transaction_adapter: TypeAdapter = TypeAdapter(Transaction)
transaction_list_adapter: TypeAdapter = TypeAdapter(list[Transaction])


# =============================================================================
# DRAFTS - untrusted, partial input
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A best-effort, partially filled transaction.

    CRITICAL: This is PROPOSED data, NOT verified. It comes from the entry
    form or from the AI assistant and must pass validation before it is
    turned into a Transaction.

    Every field is optional. A value that fails to parse becomes None
    instead of rejecting the whole draft. Both snake_case and camelCase
    keys are accepted.
    """
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    date: Optional[Date] = None
    notes: Optional[str] = None

    source_account_id: Optional[str] = None
    destination_account_id: Optional[str] = None

    category_id: Optional[str] = None
    category_name: Optional[str] = None
    use_custom_category: bool = False

    stock_symbol: Optional[str] = None
    stock_quantity: Optional[Decimal] = None
    stock_price: Optional[Decimal] = None

    @field_validator('*', mode='wrap')
    @classmethod
    def drop_invalid_values(cls, value: Any, handler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return None

    @field_validator('date', mode='before')
    @classmethod
    def truncate_to_day(cls, v: Any) -> Any:
        """Date-time input keeps only its calendar day."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace(" ", "_")
        return v

    @field_validator(
        'source_account_id', 'destination_account_id',
        'category_id', 'category_name', 'stock_symbol', 'notes',
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def is_stock_trade(self) -> bool:
        return self.type in (TransactionType.STOCK_BUY, TransactionType.STOCK_SELL)

    @property
    def effective_amount(self) -> Optional[Decimal]:
        """Cash that would move: quantity x price for stock trades."""
        if self.is_stock_trade:
            if self.stock_quantity is None or self.stock_price is None:
                return None
            return self.stock_quantity * self.stock_price
        return self.amount


# =============================================================================
# APPLICATION STATE
# =============================================================================

class LedgerState(BaseModel):
    """
    Everything the ledger persists, as one snapshot.

    DESIGN DECISION: Accounts, holdings and history change together when a
    transaction is recorded, so they travel as one object and are
    committed to storage in a single write.
    """

    accounts: list[Account] = Field(default_factory=list)
    stock_holdings: list[StockHolding] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    dashboard_start: datetime = Field(default_factory=utc_now)

    @field_validator('dashboard_start')
    @classmethod
    def make_start_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def find_holding(self, symbol: Optional[str]) -> Optional[StockHolding]:
        if not symbol:
            return None
        symbol = symbol.strip().upper()
        for holding in self.stock_holdings:
            if holding.symbol == symbol:
                return holding
        return None

    def apply(self, transaction: TransactionBase) -> 'LedgerState':
        """Return the state after recording one transaction."""
        from pocket_ledger.ledger.engine import apply_transaction

        accounts, holdings = apply_transaction(
            self.accounts, self.stock_holdings, transaction
        )
        return self.model_copy(update={
            "accounts": accounts,
            "stock_holdings": holdings,
            "transactions": [*self.transactions, transaction],
        })


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage draft validation.

    Stage 1: Schema validation (per-type required fields)
    Stage 2: Semantic validation (checks against current ledger state)
    """

    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Can the draft be recorded?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]
