"""
Bkper CLI - Source Package

Command line tools for Bkper double-entry books. The centrepiece is the
transaction merge: two duplicate transactions become one, without ever
losing money information along the way.

DESIGN PRINCIPLES:
1. Reconcile first, write after
2. Fail early, fail visibly
3. No silent corrections (amount differences are refused or audited)
4. Every step must be auditable
5. Ledger backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Bkper CLI Team"
