"""
Record Validation Boundary

Amounts, bracket tables and health factors reach this system from free
text form fields and from documents stored by other clients, so a value
may arrive as 120000, 120000.0, "120,000" or "MWK 120,000".

DESIGN DECISION: Everything is parsed and validated HERE, at the edge,
into the models in src.models. The calculators only ever see clean
models and numbers.

IMPORTANT: Validation NEVER silently fixes issues.
- A malformed amount raises InvalidInputError
- A malformed bracket record raises ConfigurationError (a broken table
  must not produce a tax figure)
- A malformed health factor is excluded and reported, because the
  health score must still render from the factors that are valid
"""

import math
import re
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from src.calculators.errors import ConfigurationError, InvalidInputError
from src.calculators.tiered_rate import validate_brackets
from src.config import get_settings
from src.models.health import HealthFactor, WeightedFactor
from src.models.tax import Bracket, UNBOUNDED_MARKERS
from src.models.validation import ValidationIssue, ValidationResult


# Currency codes and symbols accepted in front of an amount
KNOWN_CURRENCY_PREFIXES = ("MWK", "MK", "K", "$", "£", "€", "₹")


def _currency_prefix_pattern(codes: Iterable[str]) -> re.Pattern:
    """Match one leading code from `codes`, longest first, plus spacing."""
    ordered = sorted({c for c in codes if c}, key=len, reverse=True)
    return re.compile(r"^(?:" + "|".join(re.escape(c) for c in ordered) + r")\s*")


_CURRENCY_PREFIX = _currency_prefix_pattern(KNOWN_CURRENCY_PREFIXES)

# Plain digits, or digits grouped in thousands with commas
_NUMBER = re.compile(r"^[+-]?(?:\d+|\d{1,3}(?:,\d{3})+)(?:\.\d+)?$")

_BRACKET_KEYS = {
    "upper_bound": "upper_bound",
    "upperBound": "upper_bound",
    "upper": "upper_bound",
    "lower_bound": "lower_bound",
    "lowerBound": "lower_bound",
    "lower": "lower_bound",
    "rate": "rate",
}


def _parse_number(raw: Any, currency_prefix: re.Pattern = _CURRENCY_PREFIX) -> Decimal:
    """
    Parse a finite number from a number or a numeric string.

    Raises:
        ValueError: describing why the value is not a number
    """
    if isinstance(raw, bool):
        raise ValueError("booleans are not amounts")

    if isinstance(raw, (int, Decimal)):
        value = Decimal(raw)
    elif isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValueError(f"{raw} is not a finite number")
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = currency_prefix.sub("", raw.strip()).strip()
        if not _NUMBER.match(text):
            raise ValueError(f"'{raw}' is not a number")
        try:
            value = Decimal(text.replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"'{raw}' is not a number") from e
    else:
        raise ValueError(f"expected a number, got {type(raw).__name__}")

    if not value.is_finite():
        raise ValueError(f"{raw} is not a finite number")
    return value


class RecordValidator:
    """
    Parses raw records into validated models.

    Amount parsing and bracket parsing fail loudly.
    Factor parsing reports and excludes.
    """

    def __init__(self, max_amount: Optional[float] = None, currency: Optional[str] = None):
        """
        Initialize validator.

        Args:
            max_amount: Largest amount accepted from input.
                        Defaults to the configured sanity ceiling.
            currency: Currency code accepted as an amount prefix in
                      addition to the known ones. Defaults to the
                      configured tax currency.
        """
        if max_amount is None:
            max_amount = get_settings().app.max_amount
        if currency is None:
            currency = get_settings().tax.currency
        self._max_amount = Decimal(str(max_amount))
        self._currency_prefix = _currency_prefix_pattern(
            KNOWN_CURRENCY_PREFIXES + (currency.strip(),)
        )

    def parse_amount(self, raw: Any, field: str = "amount") -> Decimal:
        """
        Parse a monetary amount from form input.

        Negative values are parsed, not rejected: whether a negative
        amount is acceptable is the calculation's decision.

        Raises:
            InvalidInputError: If the value is not a finite number or
                               exceeds the configured ceiling
        """
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise InvalidInputError(f"{field} is required", value=raw)

        try:
            value = _parse_number(raw, self._currency_prefix)
        except ValueError as e:
            raise InvalidInputError(f"{field}: {e}", value=raw) from e

        if value > self._max_amount:
            raise InvalidInputError(
                f"{field}: {value:,} exceeds the maximum accepted amount "
                f"({self._max_amount:,})",
                value=raw,
            )
        return value

    def parse_brackets(self, records: Iterable[Any]) -> list[Bracket]:
        """
        Parse a bracket table from raw records.

        Accepts {"upperBound"|"upper_bound"|"upper": ..., "rate": ...}
        records; null, "Infinity" and "inf" mean no upper bound.

        Raises:
            ConfigurationError: listing every malformed record, or the
                                table-level problems if records are fine
        """
        if records is None:
            raise ConfigurationError("Bracket table is empty")

        problems = []
        table = []

        for index, record in enumerate(records):
            if isinstance(record, Bracket):
                table.append(record)
                continue

            if not isinstance(record, Mapping):
                problems.append(
                    f"bracket {index}: expected a mapping, got {type(record).__name__}"
                )
                continue

            values = {}
            record_problems = []
            for key, raw in record.items():
                name = _BRACKET_KEYS.get(key)
                if name is None:
                    record_problems.append(f"bracket {index}: unknown field '{key}'")
                    continue
                try:
                    values[name] = self._parse_bound_or_rate(name, raw)
                except ValueError as e:
                    record_problems.append(f"bracket {index}: {name} {e}")

            if record_problems:
                problems.extend(record_problems)
                continue
            if "rate" not in values:
                problems.append(f"bracket {index}: rate is required")
                continue

            try:
                table.append(Bracket(**values))
            except ValidationError as e:
                for err in e.errors():
                    loc = ".".join(str(p) for p in err["loc"])
                    problems.append(f"bracket {index}: {loc} {err['msg']}")

        if problems:
            raise ConfigurationError(
                "Invalid bracket records: " + "; ".join(problems),
                problems,
            )

        return validate_brackets(table)

    def _parse_bound_or_rate(self, name: str, raw: Any) -> Optional[Decimal]:
        if name == "upper_bound":
            if raw is None:
                return None
            if isinstance(raw, float) and raw == float("inf"):
                return None
            if isinstance(raw, str) and raw.strip().lower() in UNBOUNDED_MARKERS:
                return None
        return _parse_number(raw, self._currency_prefix)

    def parse_factors(
        self,
        records: Iterable[Any],
        model: type[WeightedFactor] = HealthFactor,
    ) -> tuple[list[WeightedFactor], ValidationResult]:
        """
        Parse scored factors, excluding malformed records.

        Never raises: the health score must always render.

        Returns:
            (accepted_factors, validation_result)
        """
        factors = []
        issues = []
        rejected = 0

        for index, record in enumerate(records or []):
            if isinstance(record, model):
                factors.append(record)
                continue

            record_issues = []
            if isinstance(record, BaseModel):
                record = record.model_dump()

            if not isinstance(record, Mapping):
                record_issues.append(ValidationIssue(
                    record_index=index,
                    field="record",
                    issue_type="invalid_format",
                    message=f"Factor {index} is not a record",
                    severity="error",
                ))
            else:
                data = dict(record)
                for name in ("score", "weight"):
                    if name not in data or (name == "weight" and data[name] is None):
                        continue
                    try:
                        data[name] = float(_parse_number(data[name], self._currency_prefix))
                    except ValueError as e:
                        record_issues.append(ValidationIssue(
                            record_index=index,
                            field=name,
                            issue_type="invalid_format",
                            message=f"Factor {index} {name}: {e}",
                            severity="error",
                            suggested_fix=f"Enter {name} as a number",
                        ))

                if not record_issues:
                    try:
                        factors.append(model.model_validate(data))
                    except ValidationError as e:
                        for err in e.errors():
                            loc = ".".join(str(p) for p in err["loc"])
                            record_issues.append(ValidationIssue(
                                record_index=index,
                                field=loc or "record",
                                issue_type=err["type"],
                                message=f"Factor {index} {loc}: {err['msg']}",
                                severity="error",
                            ))

            if record_issues:
                rejected += 1
                issues.extend(record_issues)

        return factors, ValidationResult(
            is_valid=rejected == 0,
            accepted_count=len(factors),
            rejected_count=rejected,
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Summarize a factor validation result for display.
        """
        if result.is_valid and not result.issues:
            return "✅ All factors are valid."

        lines = [
            f"⚠️ {result.rejected_count} factor(s) could not be used "
            f"({result.accepted_count} used):"
        ]
        for issue in result.issues:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")

        return "\n".join(lines)

