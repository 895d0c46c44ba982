"""
Pocket Ledger - Source Package

A personal finance tracker for accounts, transactions and stock holdings,
with an AI-assisted transaction entry form.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → Ledger applies
2. The ledger engine is a pure function over snapshots
3. No silent corrections
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
