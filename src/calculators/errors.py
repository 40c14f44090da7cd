"""
Calculator Exceptions

Both errors are raised synchronously to the immediate caller and are
never retried: a pure calculation either succeeds or its input/table
was wrong from the start.
"""

from typing import Any, Optional


class CalculatorError(Exception):
    """Base exception for calculator errors."""
    pass


class InvalidInputError(CalculatorError):
    """An amount is negative, non-finite or not a number."""

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


class ConfigurationError(CalculatorError):
    """
    A bracket table is malformed.

    This is a defect in the table, not in the user's input. Callers must
    not fall back to a default figure when they see it.
    """

    def __init__(self, message: str, problems: Optional[list[str]] = None):
        self.problems = list(problems) if problems else [message]
        super().__init__(message)
