"""Read-side views: dashboard, portfolio and history."""

from pocket_ledger.queries.dashboard import (
    DashboardSummary,
    HoldingRow,
    LabelledAmount,
    PortfolioSummary,
    build_dashboard,
    default_window_start,
    summarize_portfolio,
)
from pocket_ledger.queries.history import HistoryEntry, build_history

__all__ = [
    "DashboardSummary",
    "HistoryEntry",
    "HoldingRow",
    "LabelledAmount",
    "PortfolioSummary",
    "build_dashboard",
    "build_history",
    "default_window_start",
    "summarize_portfolio",
]
