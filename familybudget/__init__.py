"""
Family Budget API - Source Package

A budgeting web API for households: families and their members,
monthly budgets, transactions, bank-statement import and reconciliation,
and invite-based membership.

DESIGN PRINCIPLES:
1. Every mutation is a read-modify-write against the document store
2. Authorization is checked before anything is written
3. Every budget mutation leaves an edit-history event
4. Storage layer is swappable (Firestore in production, memory in tests)
"""

__version__ = "1.0.0"
__author__ = "Family Budget Team"
