"""
TabunganKu - Source Package

The ledger core of a school savings app: a roster of students, an
append-only log of deposits and withdrawals, and a bounded summary for
an AI savings advisor.

DESIGN PRINCIPLES:
1. A balance always equals the student's transaction history
2. Fail early, fail visibly: every rejected change raises a typed error
3. No silent corrections of loaded data
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "TabunganKu Team"
