"""
FinWallet - Wallet Engine Package

The computational core of a personal/family finance app: ledger
aggregation, goal allocation, budget monitoring and a deduplicated
notification pipeline over a shared document store.

DESIGN PRINCIPLES:
1. Progress is derived from the live balance, never stored
2. Fail early, fail visibly
3. No silent corrections
4. Every emitted, suppressed or failed alert is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinWallet Team"
