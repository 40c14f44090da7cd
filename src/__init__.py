"""
Personal Finance Core - Source Package

The calculation and persistence core of a household finance app:
progressive tax, financial health score, budgets and savings goals.

DESIGN PRINCIPLES:
1. Calculators are pure → flows do the I/O
2. Fail early, fail visibly
3. No silent corrections
4. Every figure must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Core Team"
