"""
Streamlit Frontend for Pocket Ledger

This is the user interface for day-to-day bookkeeping: checking the
dashboard, managing accounts, recording transactions and tracking stocks.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation for destructive actions
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI enforces the human-in-the-loop principle for the assistant:
- The assistant only fills in the form
- User reviews and edits
- Nothing is recorded without an explicit "Save Transaction" action
"""

import asyncio
from decimal import Decimal
from typing import Optional

import streamlit as st

from pocket_ledger.agents import AssistantError
from pocket_ledger.config import get_settings, validate_all_settings
from pocket_ledger.models import (
    AccountType,
    CategoryKind,
    TransactionDraft,
    TransactionType,
    categories_for,
    utc_today,
)
from pocket_ledger.orchestrator import (
    AssistantFlow,
    LedgerError,
    LedgerService,
    create_app_components,
)
from pocket_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Pocket Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .networth-box {
        padding: 20px;
        background: linear-gradient(90deg, #0284c7, #0369a1);
        color: white;
        border-radius: 16px;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


TYPE_LABELS = {
    TransactionType.EXPENSE: "Expense",
    TransactionType.INCOME: "Income",
    TransactionType.TRANSFER: "Transfer",
    TransactionType.STOCK_BUY: "Buy Stock",
    TransactionType.STOCK_SELL: "Sell Stock",
}

ACCOUNT_TYPE_LABELS = {
    AccountType.BANK: "Bank Account",
    AccountType.WALLET: "E-Wallet",
    AccountType.CASH: "Cash",
    AccountType.PORTFOLIO: "Portfolio",
    AccountType.STOCK_PORTFOLIO: "Stock Portfolio",
}

CUSTOM_CATEGORY = "__custom__"


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> tuple[LedgerService, Optional[AssistantFlow]]:
    """Get or create application components (cached)."""
    return create_app_components()


def money(value: Decimal) -> str:
    return f"{get_settings().app.currency_symbol}{value:,.2f}"


def main():
    """Main application entry point."""
    try:
        service, assistant = get_components()
    except StorageError as e:
        st.error(f"Could not open your ledger: {e}")
        st.stop()

    st.sidebar.title("💰 Pocket Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Transaction", "🧾 Transactions", "🏦 Accounts", "📈 Stocks", "⚙️ Settings"],
        index=0,
        key="page",
    )

    if page == "📊 Dashboard":
        render_dashboard_page(service)
    elif page == "➕ Add Transaction":
        render_add_transaction_page(service, assistant)
    elif page == "🧾 Transactions":
        render_history_page(service)
    elif page == "🏦 Accounts":
        render_accounts_page(service)
    elif page == "📈 Stocks":
        render_stocks_page(service)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard_page(service: LedgerService):
    """Render the dashboard."""
    summary = service.dashboard()

    col1, col2 = st.columns([4, 1])
    with col1:
        st.title("📊 Dashboard")
        st.caption(f"Stats since {summary.window_start.astimezone():%d %b %Y %H:%M}")
    with col2:
        if st.button("🔄 New Day", help="Reset the income and expense totals to zero"):
            st.session_state.confirm_new_day = True

    if st.session_state.get("confirm_new_day"):
        st.warning(
            "Start a New Day? This will reset the Income and Expense "
            "columns to zero for the current view."
        )
        yes, no = st.columns(2)
        if yes.button("Yes, start a new day", type="primary"):
            service.reset_dashboard_window()
            st.session_state.confirm_new_day = False
            st.rerun()
        if no.button("Cancel"):
            st.session_state.confirm_new_day = False
            st.rerun()

    # Net worth is never windowed
    st.markdown(f"""
    <div class="networth-box">
        <div>Total Net Worth</div>
        <div class="big-number">{money(summary.total_net_worth)}</div>
        <div>Stocks: {money(summary.stock_portfolio_value)}</div>
    </div>
    """, unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(summary.total_income))
    col2.metric("Expenses", money(summary.total_expense))
    col3.metric("Net Flow", money(summary.net_flow))

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Spending by Category")
        if summary.expense_by_category:
            st.bar_chart(
                {"Amount": {item.name: float(item.value) for item in summary.expense_by_category}},
                horizontal=True,
            )
        else:
            st.info("No expenses in this period.")

    with col2:
        st.subheader("Asset Distribution")
        if summary.asset_distribution:
            for item in summary.asset_distribution:
                st.markdown(f"**{item.name}:** {money(item.value)}")
        else:
            st.info("No positive balances yet.")


def render_add_transaction_page(
    service: LedgerService,
    assistant: Optional[AssistantFlow],
):
    """Render the entry form, optionally pre-filled by the assistant."""
    st.title("➕ Add Transaction")

    if "draft" not in st.session_state:
        st.session_state.draft = TransactionDraft()
    if "form_version" not in st.session_state:
        st.session_state.form_version = 0

    if assistant is not None:
        render_assistant(service, assistant)

    draft: TransactionDraft = st.session_state.draft
    key = f"form_{st.session_state.form_version}"
    accounts = service.accounts
    account_ids = [None] + [a.id for a in accounts]
    account_names = {a.id: f"{a.name} ({money(a.balance)})" for a in accounts}

    def account_label(account_id):
        return "Select account" if account_id is None else account_names[account_id]

    def account_index(account_id):
        return account_ids.index(account_id) if account_id in account_ids else 0

    types = list(TYPE_LABELS)
    txn_type = st.radio(
        "Type",
        types,
        index=types.index(draft.type) if draft.type else 0,
        format_func=TYPE_LABELS.get,
        horizontal=True,
        key=f"{key}_type",
    )
    is_stock = txn_type in (TransactionType.STOCK_BUY, TransactionType.STOCK_SELL)

    values = {"type": txn_type}

    col1, col2 = st.columns(2)
    with col1:
        if is_stock:
            values["stock_symbol"] = st.text_input(
                "Symbol *",
                value=draft.stock_symbol or "",
                key=f"{key}_symbol",
            ).upper()
            values["stock_quantity"] = st.number_input(
                "Quantity *",
                value=float(draft.stock_quantity or 0),
                min_value=0.0,
                key=f"{key}_quantity",
            )
            values["stock_price"] = st.number_input(
                "Price per Share *",
                value=float(draft.stock_price or 0),
                min_value=0.0,
                step=0.01,
                format="%.2f",
                key=f"{key}_price",
            )
            st.caption(
                f"Total: {money(Decimal(str(values['stock_quantity'])) * Decimal(str(values['stock_price'])))}"
            )
        else:
            values["amount"] = st.number_input(
                f"Amount ({get_settings().app.currency_symbol}) *",
                value=float(draft.amount or 0),
                min_value=0.0,
                step=0.01,
                format="%.2f",
                key=f"{key}_amount",
            )

        values["date"] = st.date_input(
            "Date",
            value=draft.date or utc_today(),
            key=f"{key}_date",
        )

    with col2:
        if txn_type in (TransactionType.EXPENSE, TransactionType.TRANSFER, TransactionType.STOCK_BUY):
            label = "Funding Account (Source) *" if txn_type == TransactionType.STOCK_BUY else "From *"
            values["source_account_id"] = st.selectbox(
                label,
                account_ids,
                index=account_index(draft.source_account_id),
                format_func=account_label,
                key=f"{key}_source",
            )
        if txn_type in (TransactionType.INCOME, TransactionType.TRANSFER, TransactionType.STOCK_SELL):
            values["destination_account_id"] = st.selectbox(
                "To *",
                account_ids,
                index=account_index(draft.destination_account_id),
                format_func=account_label,
                key=f"{key}_destination",
            )

        if txn_type in (TransactionType.INCOME, TransactionType.EXPENSE):
            kind = CategoryKind(txn_type.value)
            options = [c.id for c in categories_for(kind)] + [CUSTOM_CATEGORY]
            names = {c.id: c.name for c in categories_for(kind)}
            names[CUSTOM_CATEGORY] = "✏️ Custom"

            if draft.category_id in options:
                default = options.index(draft.category_id)
            elif draft.category_name:
                default = options.index(CUSTOM_CATEGORY)
            else:
                default = 0

            choice = st.selectbox(
                "Category",
                options,
                index=default,
                format_func=names.get,
                key=f"{key}_category",
            )
            if choice == CUSTOM_CATEGORY:
                values["use_custom_category"] = True
                values["category_name"] = st.text_input(
                    "Custom category name",
                    value=draft.category_name or "",
                    key=f"{key}_category_name",
                )
            else:
                values["category_id"] = choice

    values["notes"] = st.text_input(
        "Notes (optional)",
        value=draft.notes or "",
        key=f"{key}_notes",
    )

    if st.button("💾 Save Transaction", type="primary"):
        for field in ("amount", "stock_quantity", "stock_price"):
            if field in values:
                values[field] = Decimal(str(values[field]))
        submitted = TransactionDraft.model_validate(values)
        try:
            transaction, result, message = service.record_transaction(submitted)
        except StorageError as e:
            st.error(f"Failed to save: {e}")
            return

        if transaction is None:
            # Keep what the user entered so they can fix it
            st.session_state.draft = submitted
            st.error(message)
        else:
            if result.warnings:
                st.warning(message)
            st.success(f"✅ {TYPE_LABELS[txn_type]} of {money(transaction.amount)} saved.")
            st.session_state.draft = TransactionDraft()
            st.session_state.form_version += 1


def render_assistant(service: LedgerService, assistant: AssistantFlow):
    """AI assistant that fills in the form."""
    with st.expander("✨ AI Assistant", expanded=False):
        st.markdown(
            'Describe your transaction naturally (e.g., "Paid $50 for Groceries from Main Bank").'
        )
        text = st.text_area("Describe it", placeholder="Type here...", key="assistant_text")
        deep_thinking = st.checkbox(
            "🧠 Deep Thinking (for complex requests)",
            key="assistant_deep_thinking",
        )

        if st.button("✨ Auto-Fill Transaction", disabled=not text.strip()):
            with st.spinner("Reading your transaction..."):
                try:
                    draft = run_async(
                        assistant.transcribe(
                            text,
                            service.accounts,
                            deep_thinking=deep_thinking,
                        )
                    )
                except AssistantError as e:
                    st.error(str(e))
                    return

            st.session_state.draft = draft
            st.session_state.form_version += 1
            st.rerun()


def render_history_page(service: LedgerService):
    """Render the transaction history."""
    st.title("🧾 Transactions")

    entries = service.history()
    if not entries:
        st.info("No transactions yet. Use 'Add Transaction' to add one.")

    for entry in entries:
        col1, col2 = st.columns([3, 1])
        with col1:
            st.markdown(f"**{entry.title}**")
            st.caption(f"{entry.date.astimezone():%d %b %Y} • {entry.subtitle}")
        with col2:
            amount = f"{entry.direction or ''}{money(entry.amount)}"
            if entry.direction == "+":
                st.markdown(f":green[**{amount}**]")
            elif entry.direction == "-":
                st.markdown(f":red[**{amount}**]")
            else:
                st.markdown(f"**{amount}**")
            if entry.route:
                st.caption(entry.route)

    if entries:
        st.markdown("---")
        with st.expander("🗑️ Clear history"):
            st.markdown(
                "This removes every transaction from the list. "
                "Account balances and stock holdings stay as they are."
            )
            if st.button("Clear all transactions"):
                cleared = service.clear_transaction_history()
                st.success(f"Removed {cleared} transactions.")
                st.rerun()


def render_accounts_page(service: LedgerService):
    """Render the accounts page."""
    st.title("🏦 Accounts")

    for account in service.accounts:
        with st.expander(f"{account.name} - {money(account.balance)}"):
            name = st.text_input("Name", value=account.name, key=f"name_{account.id}")
            account_type = st.selectbox(
                "Type",
                list(ACCOUNT_TYPE_LABELS),
                index=list(ACCOUNT_TYPE_LABELS).index(account.type),
                format_func=ACCOUNT_TYPE_LABELS.get,
                key=f"type_{account.id}",
            )
            balance = st.number_input(
                "Balance",
                value=float(account.balance),
                step=0.01,
                format="%.2f",
                key=f"balance_{account.id}",
            )

            col1, col2 = st.columns(2)
            if col1.button("💾 Save", key=f"save_{account.id}"):
                try:
                    service.edit_account(
                        account.id,
                        name=name,
                        account_type=account_type,
                        balance=Decimal(str(balance)),
                    )
                    st.rerun()
                except (LedgerError, ValueError) as e:
                    st.error(str(e))
            if col2.button("🗑️ Delete", key=f"delete_{account.id}"):
                service.delete_account(account.id)
                st.rerun()

    st.markdown("---")
    st.subheader("Add Account")
    with st.form("new_account", clear_on_submit=True):
        name = st.text_input("Account Name *")
        account_type = st.selectbox(
            "Type",
            list(ACCOUNT_TYPE_LABELS),
            format_func=ACCOUNT_TYPE_LABELS.get,
        )
        balance = st.number_input("Opening Balance", value=0.0, step=0.01, format="%.2f")

        if st.form_submit_button("➕ Add Account", type="primary"):
            if not name.strip():
                st.error("Please enter the account name")
            else:
                service.create_account(
                    name=name,
                    account_type=account_type,
                    balance=Decimal(str(balance)),
                )
                st.rerun()


def render_stocks_page(service: LedgerService):
    """Render the stock portfolio."""
    st.title("📈 Stocks")

    portfolio = service.portfolio()

    col1, col2, col3 = st.columns(3)
    col1.metric("Portfolio Value", money(portfolio.total_value))
    col2.metric("Total Cost", money(portfolio.total_cost))
    col3.metric(
        "Total P&L",
        money(portfolio.total_pnl),
        delta=(
            f"{portfolio.total_pnl_percent:.2f}%"
            if portfolio.total_pnl_percent is not None else None
        ),
    )

    if not portfolio.holdings:
        st.info("No stocks yet. Record a 'Buy Stock' transaction to add one.")

    for row in portfolio.holdings:
        with st.expander(f"{row.symbol} - {row.quantity} shares - {money(row.market_value)}"):
            st.markdown(f"**Average buy price:** {money(row.average_buy_price)}")
            pnl = money(row.unrealized_pnl)
            if row.unrealized_pnl_percent is not None:
                pnl += f" ({row.unrealized_pnl_percent:.2f}%)"
            st.markdown(f"**Unrealized P&L:** {pnl}")

            price = st.number_input(
                "Current price",
                value=float(row.current_price),
                min_value=0.0,
                step=0.01,
                format="%.2f",
                key=f"price_{row.holding_id}",
            )
            if st.button("Update price", key=f"update_{row.holding_id}"):
                service.update_stock_price(row.holding_id, Decimal(str(price)))
                st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (AI Assistant)", "gemini"),
        ("Storage", "storage"),
        ("Google Sheets (optional storage)", "google_sheets"),
        ("App", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
