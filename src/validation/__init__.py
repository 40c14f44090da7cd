"""Record validation package."""

from src.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
