"""
Two-Stage Entry Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Transaction type present
- Per-type required fields (amount or stock fields, account references)
- Text length limits (stock symbol, notes, custom category name)
- This catches incomplete form input and partial AI drafts

STAGE 2 - SEMANTIC VALIDATION:
- Referenced accounts still exist
- Stock sales are covered by a holding
- Future date and absurd amount detection
- Overdraft detection on the funding account
- This catches drafts that are complete but don't fit the current ledger

Stage 2 is skipped when stage 1 fails.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the draft goes back to the form unchanged.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from pocket_ledger.config import AppSettings, get_settings
from pocket_ledger.models.category import get_category
from pocket_ledger.models.ledger import (
    MAX_CATEGORY_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_SYMBOL_LENGTH,
    TRANSACTION_VARIANTS,
    Account,
    StockHolding,
    TransactionBase,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    ensure_aware,
    utc_now,
    utc_today,
)


# Account references each transaction type must carry
REQUIRED_ACCOUNT_FIELDS: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.INCOME: ("destination_account_id",),
    TransactionType.EXPENSE: ("source_account_id",),
    TransactionType.TRANSFER: ("source_account_id", "destination_account_id"),
    TransactionType.STOCK_BUY: ("source_account_id",),
    TransactionType.STOCK_SELL: ("destination_account_id",),
}

# Types that take money out of the source account
FUNDED_TYPES = (
    TransactionType.EXPENSE,
    TransactionType.TRANSFER,
    TransactionType.STOCK_BUY,
)

CUSTOM_CATEGORY_DEFAULTS = {
    TransactionType.INCOME: "Custom Income",
    TransactionType.EXPENSE: "Custom Expense",
}


class TransactionBuildError(ValueError):
    """Raised when a draft cannot be turned into a transaction."""
    pass


class TransactionValidator:
    """
    Validates transaction drafts through a two-stage pipeline.

    Stage 1: Schema validation (needs nothing but the draft)
    Stage 2: Semantic validation (needs the current accounts and holdings)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if draft.type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please choose a transaction type.",
                severity="error",
            ))
            return False, issues

        if draft.is_stock_trade:
            if not draft.stock_symbol:
                issues.append(ValidationIssue(
                    field="stock_symbol",
                    issue_type="missing",
                    message="Please specify the stock symbol.",
                    severity="error",
                ))
            if draft.stock_quantity is None or draft.stock_quantity <= 0:
                issues.append(ValidationIssue(
                    field="stock_quantity",
                    issue_type="invalid_value",
                    message="Please specify a valid quantity.",
                    severity="error",
                ))
            if draft.stock_price is None or draft.stock_price <= 0:
                issues.append(ValidationIssue(
                    field="stock_price",
                    issue_type="invalid_value",
                    message="Please specify a valid price per share.",
                    severity="error",
                ))
        elif draft.amount is None or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please specify a valid amount.",
                severity="error",
            ))

        issues.extend(self._check_account_fields(draft))
        issues.extend(self._check_text_lengths(draft))

        if (
            draft.type in CUSTOM_CATEGORY_DEFAULTS
            and draft.category_id
            and draft.category_name
            and not draft.use_custom_category
        ):
            issues.append(ValidationIssue(
                field="category",
                issue_type="ambiguous",
                message="Both a category and a custom category name were given",
                severity="warning",
                suggested_fix="The selected category will be used",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _check_account_fields(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        """Per-type account reference checks, worded for the entry form."""
        issues = []
        source = draft.source_account_id
        destination = draft.destination_account_id

        if draft.type == TransactionType.EXPENSE and not source:
            issues.append(ValidationIssue(
                field="source_account_id",
                issue_type="missing",
                message="Please specify the source account (From) where the money comes from.",
                severity="error",
            ))
        elif draft.type == TransactionType.INCOME and not destination:
            issues.append(ValidationIssue(
                field="destination_account_id",
                issue_type="missing",
                message="Please specify the destination account (To) where the money will be deposited.",
                severity="error",
            ))
        elif draft.type == TransactionType.TRANSFER:
            if not source:
                issues.append(ValidationIssue(
                    field="source_account_id",
                    issue_type="missing",
                    message="Please specify the source account (From).",
                    severity="error",
                ))
            if not destination:
                issues.append(ValidationIssue(
                    field="destination_account_id",
                    issue_type="missing",
                    message="Please specify the destination account (To).",
                    severity="error",
                ))
            if source and destination and source == destination:
                issues.append(ValidationIssue(
                    field="destination_account_id",
                    issue_type="invalid_value",
                    message="Source and destination accounts cannot be the same.",
                    severity="error",
                ))
        elif draft.type == TransactionType.STOCK_BUY and not source:
            issues.append(ValidationIssue(
                field="source_account_id",
                issue_type="missing",
                message="Please specify the Funding Account (Source) to pay for this purchase.",
                severity="error",
            ))
        elif draft.type == TransactionType.STOCK_SELL and not destination:
            issues.append(ValidationIssue(
                field="destination_account_id",
                issue_type="missing",
                message="Please specify the destination account (To) for the sale proceeds.",
                severity="error",
            ))

        return issues

    def _check_text_lengths(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        """Length limits the stored transaction enforces, checked up front."""
        issues = []

        symbol = (draft.stock_symbol or "").strip()
        if draft.is_stock_trade and len(symbol) > MAX_SYMBOL_LENGTH:
            issues.append(ValidationIssue(
                field="stock_symbol",
                issue_type="too_long",
                message=f"Stock symbol must be at most {MAX_SYMBOL_LENGTH} characters.",
                severity="error",
            ))

        notes = (draft.notes or "").strip()
        if len(notes) > MAX_NOTES_LENGTH:
            issues.append(ValidationIssue(
                field="notes",
                issue_type="too_long",
                message=f"Notes must be at most {MAX_NOTES_LENGTH} characters.",
                severity="error",
            ))

        # Only a name that ends up on the transaction counts
        category_name = (draft.category_name or "").strip()
        uses_name = draft.use_custom_category or not draft.category_id
        if (
            draft.type in CUSTOM_CATEGORY_DEFAULTS
            and uses_name
            and len(category_name) > MAX_CATEGORY_NAME_LENGTH
        ):
            issues.append(ValidationIssue(
                field="category_name",
                issue_type="too_long",
                message=f"Category name must be at most {MAX_CATEGORY_NAME_LENGTH} characters.",
                severity="error",
            ))

        return issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        accounts: list[Account],
        stock_holdings: list[StockHolding],
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        accounts_by_id = {account.id: account for account in accounts}

        for field in REQUIRED_ACCOUNT_FIELDS[draft.type]:
            account_id = getattr(draft, field)
            if account_id not in accounts_by_id:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="unknown_reference",
                    message=f"Account {account_id} no longer exists",
                    severity="error",
                    suggested_fix="Pick one of your current accounts",
                ))

        if (
            draft.type in CUSTOM_CATEGORY_DEFAULTS
            and draft.category_id
            and not draft.use_custom_category
            and get_category(draft.category_id) is None
        ):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Category {draft.category_id} is not a known category",
                severity="warning",
                suggested_fix="It will be shown as 'Other'",
            ))

        if draft.type == TransactionType.STOCK_SELL:
            symbol = draft.stock_symbol.upper()
            holding = next(
                (h for h in stock_holdings if h.symbol == symbol),
                None,
            )
            if holding is None:
                issues.append(ValidationIssue(
                    field="stock_symbol",
                    issue_type="invalid_value",
                    message=f"You don't hold any {symbol} shares to sell",
                    severity="error",
                ))
            elif draft.stock_quantity > holding.quantity:
                issues.append(ValidationIssue(
                    field="stock_quantity",
                    issue_type="invalid_value",
                    message=f"You only hold {holding.quantity} {symbol} shares",
                    severity="error",
                    suggested_fix=f"Sell at most {holding.quantity} shares",
                ))

        # Future date check (with tolerance)
        max_future_date = today + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if draft.date and draft.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        amount = draft.effective_amount
        symbol = self._settings.currency_symbol

        # Absurd amount check
        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({symbol}{amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if draft.type in FUNDED_TYPES:
            funding = accounts_by_id.get(draft.source_account_id)
            if funding is not None and funding.balance - amount < 0:
                issues.append(ValidationIssue(
                    field="source_account_id",
                    issue_type="overdraft",
                    message=(
                        f"This will take {funding.name} below zero "
                        f"({symbol}{funding.balance - amount:,.2f})"
                    ),
                    severity="warning",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        draft: TransactionDraft,
        accounts: list[Account],
        stock_holdings: list[StockHolding],
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: The transaction draft from the form or the assistant
            accounts: Current accounts
            stock_holdings: Current holdings
            today: Reference day for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                draft,
                accounts,
                stock_holdings,
                today or utc_today(),
            )
            all_issues.extend(semantic_issues)

        warnings = [
            issue.message for issue in all_issues if issue.severity == "warning"
        ]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        The first error is the blocking message shown on the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ Transaction looks good."

        lines = []

        if not result.is_valid:
            errors = result.errors
            lines.append(errors[0].message)
            for issue in errors[1:]:
                lines.append(f"   • {issue.message}")
            for issue in errors:
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def resolve_timestamp(day: Optional[date], now: datetime) -> datetime:
    """
    Timestamp for a transaction entered for `day`.

    Today keeps the current time so same-day entries stay ordered;
    any other day is recorded at midnight UTC.
    """
    if day is None or day == now.date():
        return now
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def build_transaction(
    draft: TransactionDraft,
    now: Optional[datetime] = None,
) -> TransactionBase:
    """
    Convert a validated draft into the matching transaction variant.

    Only the fields the variant accepts are carried over, so stray values
    from the assistant (a destination on an expense, say) are dropped.

    Raises:
        TransactionBuildError: If the draft is still incomplete
    """
    if draft.type is None:
        raise TransactionBuildError("Transaction type is required")

    now = ensure_aware(now) if now else utc_now()
    now = now.astimezone(timezone.utc)

    fields = {
        "amount": draft.effective_amount,
        "date": resolve_timestamp(draft.date, now),
        "notes": draft.notes,
    }

    for name in REQUIRED_ACCOUNT_FIELDS[draft.type]:
        fields[name] = getattr(draft, name)

    if draft.type in CUSTOM_CATEGORY_DEFAULTS:
        if draft.use_custom_category:
            fields["category_name"] = (
                draft.category_name or CUSTOM_CATEGORY_DEFAULTS[draft.type]
            )
        elif draft.category_id:
            fields["category_id"] = draft.category_id
        elif draft.category_name:
            fields["category_name"] = draft.category_name

    if draft.is_stock_trade:
        fields["stock_symbol"] = draft.stock_symbol.upper() if draft.stock_symbol else None
        fields["stock_quantity"] = draft.stock_quantity
        fields["stock_price"] = draft.stock_price

    try:
        return TRANSACTION_VARIANTS[draft.type](**fields)
    except ValidationError as e:
        raise TransactionBuildError(f"Incomplete {draft.type.value} transaction: {e}") from e
