"""
ATO Depreciation Formulas

Implements Australian depreciation rules for residential investment property:
- Division 40 (plant & equipment): diminishing value or prime cost
  - Prime cost: cost / effective life per year
  - Diminishing value: 200% / effective life of the written-down value
- Division 43 (capital works): 2.5% of construction cost for 40 years
- Low-value pool: 37.5% of additions, 18.75% of the opening pool balance

Australian financial years run 1 July to 30 June and are named by the
calendar year in which they end (1 Jul 2025 - 30 Jun 2026 is FY2026).

All functions are pure. Money is handled as Decimal and rounded to cents
with ROUND_HALF_UP.
"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Optional, Union

from ..config import get_settings
from ..models.entities import DepreciationCategory, DepreciationMethod

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
DAYS_IN_YEAR = Decimal("365")

MAX_SCHEDULE_YEARS = 40

CAPITAL_WORKS_LIFE = Decimal("40")
CAPITAL_WORKS_RATE = Decimal("0.025")

LOW_VALUE_POOL_FIRST_YEAR_RATE = Decimal("0.375")
LOW_VALUE_POOL_RATE = Decimal("0.1875")


@dataclass(frozen=True)
class YearEntry:
    """One year of a depreciation schedule."""
    year: int
    opening_value: Decimal
    deduction: Decimal
    closing_value: Decimal


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def enforce_division_43(
    category: str,
    method: str,
    effective_life: Number
) -> tuple[DepreciationMethod, Decimal]:
    """
    Apply the capital works rule to a (method, effective life) pair.

    Capital works are always prime cost over 40 years, whatever was submitted.
    """
    if category == DepreciationCategory.CAPITAL_WORKS:
        return DepreciationMethod.PRIME_COST, CAPITAL_WORKS_LIFE
    return DepreciationMethod(method), to_decimal(effective_life)


# ─── Core formulas ────────────────────────────────────────────────


def calculate_yearly_deduction(
    original_cost: Number,
    effective_life: Number,
    method: str,
    pro_rata_factor: Number = 1
) -> Decimal:
    """
    Yearly deduction using ATO formulas.

    Prime cost: cost / effective life
    Diminishing value: (cost * 2) / effective life

    ``pro_rata_factor`` is the fraction of the year the asset was held
    (e.g. days_held / 365). Returns 0 for non-positive cost or life.
    """
    cost = to_decimal(original_cost)
    life = to_decimal(effective_life)
    if cost <= 0 or life <= 0:
        return Decimal("0")

    if method == DepreciationMethod.PRIME_COST:
        deduction = cost / life
    else:
        deduction = (cost * 2) / life

    return round_money(deduction * to_decimal(pro_rata_factor))


def calculate_remaining_value(
    original_cost: Number,
    effective_life: Number,
    method: str,
    years_elapsed: int
) -> Decimal:
    """
    Book value after a number of whole years of depreciation.

    Prime cost reduces linearly; diminishing value compounds at 2 / life.
    Never negative.
    """
    cost = to_decimal(original_cost)
    life = to_decimal(effective_life)
    if cost <= 0 or life <= 0:
        return Decimal("0")
    if years_elapsed <= 0:
        return cost

    if method == DepreciationMethod.PRIME_COST:
        annual = cost / life
        return max(Decimal("0"), round_money(cost - annual * years_elapsed))

    rate = 2 / life
    value = cost
    for _ in range(years_elapsed):
        value = value * (1 - rate)
        if value < CENT:
            return Decimal("0")

    return round_money(value)


@lru_cache(maxsize=get_settings().schedule_cache_size)
def generate_multi_year_schedule(
    original_cost: Number,
    effective_life: Number,
    method: str,
    max_years: Optional[int] = None
) -> tuple[YearEntry, ...]:
    """
    Multi-year schedule of opening value, deduction and closing value.

    Runs for min(max_years or effective life, 40) years and stops early once
    the asset is fully written off. Diminishing value deductions are taken
    from each year's opening value; no deduction exceeds the opening value.

    Results are memoised, so the returned tuple must not be mutated.
    """
    cost = to_decimal(original_cost)
    life = to_decimal(effective_life)
    if cost <= 0 or life <= 0:
        return ()

    years = min(max_years if max_years is not None else math.ceil(life), MAX_SCHEDULE_YEARS)
    entries = []
    opening_value = cost

    for year in range(1, years + 1):
        if opening_value <= 0:
            break

        if method == DepreciationMethod.PRIME_COST:
            deduction = cost / life
        else:
            deduction = opening_value * (2 / life)

        deduction = round_money(min(deduction, opening_value))
        closing_value = max(Decimal("0"), round_money(opening_value - deduction))

        entries.append(YearEntry(
            year=year,
            opening_value=round_money(opening_value),
            deduction=deduction,
            closing_value=closing_value
        ))

        opening_value = closing_value

    return tuple(entries)


# ─── Financial years ──────────────────────────────────────────────


def financial_year_for(on: Optional[date] = None) -> int:
    """
    Financial year containing a date.

    Jul 1 2025 -> 2026, Mar 1 2026 -> 2026, Jun 30 2025 -> 2025.
    """
    on = on or date.today()
    return on.year + 1 if on.month >= 7 else on.year


def financial_year_bounds(financial_year: int) -> tuple[date, date]:
    """First and last day of a financial year."""
    return date(financial_year - 1, 7, 1), date(financial_year, 6, 30)


def days_in_first_financial_year(purchase_date: date) -> int:
    """Days from purchase to 30 June of that financial year, inclusive. Minimum 1."""
    _, fy_end = financial_year_bounds(financial_year_for(purchase_date))
    return max((fy_end - purchase_date).days + 1, 1)


# ─── Division 40: year-by-year replay ────────────────────────────


def diminishing_value_deduction(
    original_cost: Number,
    effective_life: Number,
    year_index: int,
    days_first_year: int
) -> Decimal:
    """
    Diminishing value deduction for the ``year_index``-th financial year held.

    Year 0 is pro-rated by days_first_year / 365. Sub-dollar residuals are
    treated as fully depreciated.
    """
    life = to_decimal(effective_life)
    if life <= 0 or year_index < 0:
        return Decimal("0")

    rate = 2 / life
    wdv = to_decimal(original_cost)

    for y in range(year_index + 1):
        if wdv < 1:
            return Decimal("0")

        if y == 0:
            deduction = round_money(wdv * rate * (Decimal(days_first_year) / DAYS_IN_YEAR))
        else:
            deduction = round_money(wdv * rate)
        deduction = min(deduction, wdv)

        if y == year_index:
            return deduction

        wdv = round_money(wdv - deduction)

    return Decimal("0")


def prime_cost_deduction(
    original_cost: Number,
    effective_life: Number,
    year_index: int,
    days_first_year: int
) -> Decimal:
    """
    Prime cost deduction for the ``year_index``-th financial year held.

    Year 0 is pro-rated; later years take the flat annual amount, capped at
    what is left to deduct. Zero once fully written off.
    """
    cost = to_decimal(original_cost)
    life = to_decimal(effective_life)
    if life <= 0 or year_index < 0:
        return Decimal("0")

    annual = cost / life
    total_deducted = Decimal("0")

    for y in range(year_index + 1):
        remaining = round_money(cost - total_deducted)
        if remaining <= CENT:
            return Decimal("0")

        if y == 0:
            deduction = annual * (Decimal(days_first_year) / DAYS_IN_YEAR)
        else:
            deduction = annual
        deduction = min(round_money(deduction), remaining)

        if y == year_index:
            return deduction

        total_deducted += deduction

    return Decimal("0")


# ─── Low-value pool ──────────────────────────────────────────────


def low_value_pool_deduction(opening_balance: Number, additions: Number = 0) -> Decimal:
    """18.75% of the opening pool balance plus 37.5% of additions."""
    return round_money(
        to_decimal(opening_balance) * LOW_VALUE_POOL_RATE
        + to_decimal(additions) * LOW_VALUE_POOL_FIRST_YEAR_RATE
    )


# ─── Division 43: capital works ──────────────────────────────────


def capital_works_deduction(
    construction_cost: Number,
    construction_date: date,
    claim_start_date: date,
    financial_year: int
) -> Decimal:
    """
    Capital works deduction for one financial year.

    2.5% of construction cost per year. The first claim year is pro-rated
    from the claim start date to 30 June. Nothing is claimable before the
    claim start year or from 40 years after the construction year.
    """
    construction_fy = financial_year_for(construction_date)
    claim_start_fy = financial_year_for(claim_start_date)

    if financial_year < claim_start_fy:
        return Decimal("0")
    if financial_year - construction_fy >= MAX_SCHEDULE_YEARS:
        return Decimal("0")

    annual = round_money(to_decimal(construction_cost) * CAPITAL_WORKS_RATE)

    if financial_year == claim_start_fy:
        days = days_in_first_financial_year(claim_start_date)
        return round_money(annual * (Decimal(days) / DAYS_IN_YEAR))

    return annual
