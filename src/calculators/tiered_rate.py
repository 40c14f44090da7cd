"""
Tiered Rate Calculator

Computes a liability under progressive (marginal) brackets: each
bracket's rate applies only to the slice of the amount that falls
inside that bracket, never to the whole amount. PAYE uses a multi-tier
table; company tax is the degenerate one-bracket table.

GUARANTEES:
- total_tax >= 0
- total_tax never decreases as the amount grows (fixed table)
- no cliff edge at a boundary: an amount equal to a bound is taxed
  entirely at the lower bracket's rate, and one cent more is taxed
  only on that cent at the next rate

IMPORTANT: A malformed table is never "fixed up". It raises
ConfigurationError, because a number produced from a broken table
would be actively misleading.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, localcontext
from typing import Any, Union

from pydantic import ValidationError

from src.calculators.errors import ConfigurationError, InvalidInputError
from src.models.tax import Bracket, BracketAllocation, LiabilityResult

ZERO = Decimal("0")

DEFAULT_PRECISION = 28
# Beyond this an amount is not a real figure
MAX_PRECISION = 1000

BracketLike = Union[Bracket, Mapping, tuple, list]


def _coerce_bracket(raw: Any, index: int) -> Bracket:
    """Accept a Bracket, a mapping or an (upper_bound, rate) pair."""
    if isinstance(raw, Bracket):
        return raw

    try:
        if isinstance(raw, Mapping):
            return Bracket(**raw)
        if isinstance(raw, (tuple, list)) and len(raw) == 2:
            return Bracket(upper_bound=raw[0], rate=raw[1])
    except ValidationError as e:
        problems = [
            f"bracket {index}: {'.'.join(str(p) for p in err['loc'])} {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(f"Bracket {index} is invalid", problems) from e

    raise ConfigurationError(
        f"Bracket {index} is invalid",
        [f"bracket {index}: expected a Bracket, mapping or (upper_bound, rate) pair"],
    )


def validate_brackets(brackets: Iterable[BracketLike]) -> list[Bracket]:
    """
    Check a bracket table and return it as Bracket models.

    Checks:
    - at least one bracket
    - upper bounds strictly ascending
    - only the last bracket is unbounded, and the last one is unbounded
    - explicit lower bounds (if any) meet the previous upper bound exactly
    - rates within [0, 1]

    Raises:
        ConfigurationError: listing every problem found
    """
    if brackets is None:
        raise ConfigurationError("Bracket table is empty")

    table = [_coerce_bracket(raw, i) for i, raw in enumerate(brackets)]
    if not table:
        raise ConfigurationError("Bracket table is empty")

    problems = []
    previous_bound = ZERO
    last_index = len(table) - 1

    for i, bracket in enumerate(table):
        if not (ZERO <= bracket.rate <= Decimal("1")):
            problems.append(f"bracket {i}: rate {bracket.rate} is outside [0, 1]")

        if bracket.lower_bound is not None and bracket.lower_bound != previous_bound:
            kind = "gap" if bracket.lower_bound > previous_bound else "overlap"
            problems.append(
                f"bracket {i}: {kind} between {previous_bound} and lower bound "
                f"{bracket.lower_bound}"
            )

        if bracket.is_unbounded:
            if i != last_index:
                problems.append(
                    f"bracket {i}: unbounded bracket must be the last one"
                )
            break

        if bracket.upper_bound < ZERO:
            problems.append(f"bracket {i}: upper bound {bracket.upper_bound} is negative")
        elif i > 0 and bracket.upper_bound <= previous_bound:
            problems.append(
                f"bracket {i}: upper bound {bracket.upper_bound} is not above "
                f"previous bound {previous_bound}"
            )
        previous_bound = bracket.upper_bound

    if not table[-1].is_unbounded:
        problems.append("last bracket must be unbounded so every amount is covered")

    if problems:
        raise ConfigurationError("Invalid bracket table: " + "; ".join(problems), problems)

    return table


def _to_amount(amount: Any) -> Decimal:
    """Convert a numeric amount to Decimal, rejecting anything else."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise InvalidInputError(
            f"Amount must be a number, got {type(amount).__name__}",
            value=amount,
        )

    value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)

    if not value.is_finite():
        raise InvalidInputError(f"Amount must be finite, got {amount}", value=amount)
    if value < ZERO:
        raise InvalidInputError(f"Amount cannot be negative, got {amount}", value=amount)

    return value


def _digit_span(values: Iterable[Decimal]) -> int:
    """Digits needed to hold every value exactly on one shared scale."""
    values = [v for v in values if v]
    if not values:
        return 1
    top = max(v.adjusted() for v in values)
    bottom = min(v.as_tuple().exponent for v in values)
    return top - bottom + 1


def _required_precision(amount: Decimal, table: list[Bracket]) -> int:
    """
    Context precision at which the allocation is exact.

    Slices and bounds share the amount's scale; each slice is multiplied
    by a rate and up to len(table) products are summed.

    Raises:
        InvalidInputError: If the amount needs more digits than MAX_PRECISION
    """
    bounds = [b.upper_bound for b in table if not b.is_unbounded]
    needed = (
        _digit_span([amount, *bounds])
        + _digit_span(b.rate for b in table)
        + len(table)
        + 1
    )
    if needed > MAX_PRECISION:
        raise InvalidInputError(
            f"Amount needs {needed} significant digits; at most "
            f"{MAX_PRECISION} are supported",
            value=amount,
        )
    return max(DEFAULT_PRECISION, needed)


def _allocate(amount: Decimal, table: list[Bracket]) -> LiabilityResult:
    with localcontext() as ctx:
        ctx.prec = _required_precision(amount, table)
        return _allocate_exact(amount, table)


def _allocate_exact(amount: Decimal, table: list[Bracket]) -> LiabilityResult:
    remaining = amount
    previous_bound = ZERO
    total_tax = ZERO
    breakdown = []

    for bracket in table:
        if bracket.is_unbounded:
            taxable = remaining
        else:
            taxable = min(remaining, bracket.upper_bound - previous_bound)

        tax = taxable * bracket.rate
        total_tax += tax
        remaining -= taxable
        breakdown.append(BracketAllocation(
            bracket=bracket,
            taxable_amount=taxable,
            tax=tax,
        ))

        if not bracket.is_unbounded:
            previous_bound = bracket.upper_bound

        # Fully allocated; later brackets must not be touched
        if remaining <= ZERO:
            break

    effective_rate = total_tax / amount if amount > ZERO else ZERO

    return LiabilityResult(
        amount=amount,
        total_tax=total_tax,
        effective_rate=effective_rate,
        breakdown=breakdown,
    )


def compute_liability(amount: Any, brackets: Iterable[BracketLike]) -> LiabilityResult:
    """
    Compute the progressive liability of amount under brackets.

    Args:
        amount: Non-negative, finite number (salary, profit, ...)
        brackets: Ascending table whose last bracket is unbounded

    Returns:
        LiabilityResult with total_tax, effective_rate and breakdown

    Raises:
        ConfigurationError: If the table is malformed
        InvalidInputError: If the amount is negative or not a finite number
    """
    table = validate_brackets(brackets)
    return _allocate(_to_amount(amount), table)


def flat_rate_brackets(rate: Any) -> list[Bracket]:
    """A single unbounded bracket: a flat tax expressed as a table."""
    return validate_brackets([(None, rate)])


class TieredRateCalculator:
    """
    A bracket table bound to a calculator.

    The table is validated once, at construction, so a misconfigured
    table fails at startup rather than on the first user request.
    """

    def __init__(self, brackets: Iterable[BracketLike]):
        self._brackets = validate_brackets(brackets)

    @classmethod
    def flat(cls, rate: Any) -> "TieredRateCalculator":
        return cls(flat_rate_brackets(rate))

    @property
    def brackets(self) -> list[Bracket]:
        return list(self._brackets)

    def compute_liability(self, amount: Any) -> LiabilityResult:
        return _allocate(_to_amount(amount), self._brackets)
