"""
Profit Tracker - Source Package

A small-business finance tracker: record sales, expenses and
investments, see what the business earned over a period, and track
progress towards profit goals.

DESIGN PRINCIPLES:
1. Statistics are recomputed from one snapshot, never cached as truth
2. Fail visibly at the storage boundary, never inside the arithmetic
3. No silent corrections of user input
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Profit Tracker Team"
