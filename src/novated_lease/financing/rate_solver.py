from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from novated_lease.coerce import to_number
from novated_lease.financing.annuity import monthly_lease_payment
from novated_lease.lease.normalizer import (
    DEFAULT_MONTHS_DEFERRED,
    LeaseInputs,
    LeaseResults,
    calculate_novated_lease,
)

logger = logging.getLogger(__name__)

RATE_LOWER_BOUND = 0.00001
RATE_UPPER_BOUND = 0.5
PAYMENT_TOLERANCE = 1e-4
MAX_ITERATIONS = 100


def _usable(value: Any) -> float | None:
    # Missing, zero, non-finite or unparseable inputs all mean "cannot solve".
    try:
        number = to_number(value)
    except ValueError:
        return None
    if not number:
        return None
    return number


def _deferred_months(value: Any) -> int | None:
    try:
        number = to_number(value, "months_deferred")
    except ValueError:
        return None
    # Blank or non-finite counts as not supplied.
    if number is None:
        return DEFAULT_MONTHS_DEFERRED
    if number < 0 or number != int(number):
        return None
    return int(number)


def monthly_equivalent_payment(
    payment_amount: float, payments_per_year: float, lease_term_years: float, months_deferred: int
) -> float:
    """Spread the nominal total paid over the term across the payable months."""
    return payment_amount * (payments_per_year * lease_term_years) / (12 * lease_term_years - months_deferred)


def calculate_effective_interest_rate(
    *,
    payment_amount: Any,
    payments_per_year: Any,
    lease_term_years: Any,
    financed_amount: Any,
    residual_excl_gst: Any,
    months_deferred: Any = DEFAULT_MONTHS_DEFERRED,
) -> float | None:
    """
    Bisection search for the annual rate whose deferred, in-advance monthly
    payment matches `payment_amount` converted to a monthly equivalent.
    Returns None when inputs are incomplete or no rate in
    [RATE_LOWER_BOUND, RATE_UPPER_BOUND] reproduces the payment.
    """
    payment = _usable(payment_amount)
    per_year = _usable(payments_per_year)
    term = _usable(lease_term_years)
    financed = _usable(financed_amount)
    residual = _usable(residual_excl_gst)
    deferred = _deferred_months(months_deferred)
    if None in (payment, per_year, term, financed, residual, deferred):
        return None

    n = term * 12 - deferred
    if n <= 0:
        return None
    target = monthly_equivalent_payment(payment, per_year, term, deferred)

    lo = RATE_LOWER_BOUND
    hi = RATE_UPPER_BOUND
    for _ in range(MAX_ITERATIONS):
        guess = (lo + hi) / 2.0
        calc = monthly_lease_payment(
            financed_amount=financed,
            residual=residual,
            annual_rate=guess,
            payment_months=n,
            months_deferred=deferred,
        )
        if abs(calc - target) < PAYMENT_TOLERANCE:
            logger.debug("rate converged: %.6f (target payment %.4f)", guess, target)
            return guess
        # Payment rises with the rate over the searched range.
        if calc > target:
            hi = guess
        else:
            lo = guess

    logger.debug("no rate in [%s, %s] gives monthly payment %.4f", RATE_LOWER_BOUND, RATE_UPPER_BOUND, target)
    return None


def calculate_byo_payment(
    *,
    financed_amount: float,
    residual_excl_gst: float,
    lease_term_years: float,
    payments_per_year: float,
    interest_rate: float,
    months_deferred: int = DEFAULT_MONTHS_DEFERRED,
) -> float:
    """
    Payment per period (at `payments_per_year` frequency) for a self-financed
    loan at a known nominal annual `interest_rate`, e.g. 0.08 for 8%.
    """
    if lease_term_years <= 0:
        raise ValueError("lease_term_years must be > 0")
    if payments_per_year <= 0:
        raise ValueError("payments_per_year must be > 0")
    if months_deferred < 0:
        raise ValueError("months_deferred must be >= 0")
    if interest_rate <= -1.0:
        raise ValueError("interest_rate too small")

    n = lease_term_years * 12 - months_deferred
    if n <= 0:
        raise ValueError("months_deferred must leave at least one payment month")

    monthly = monthly_lease_payment(
        financed_amount=financed_amount,
        residual=residual_excl_gst,
        annual_rate=interest_rate,
        payment_months=n,
        months_deferred=months_deferred,
    )
    return float(monthly * n / (payments_per_year * lease_term_years))


@dataclass(frozen=True)
class LeaseRates:
    # Rate on the financed amount as quoted, fee included.
    base_rate: float | None
    # Rate on the vehicle alone, with the documentation fee treated as a cost.
    effective_rate: float | None


def solve_lease_rates(inputs: LeaseInputs, results: LeaseResults | None = None) -> LeaseRates:
    if results is None:
        results = calculate_novated_lease(inputs)

    common = dict(
        payment_amount=inputs.payment_amount,
        payments_per_year=inputs.payments_per_year,
        lease_term_years=inputs.lease_term_years,
        residual_excl_gst=results.residual_excl_gst,
        months_deferred=inputs.months_deferred,
    )
    fee = to_number(inputs.documentation_fee, "documentation_fee") or 0.0
    return LeaseRates(
        base_rate=calculate_effective_interest_rate(financed_amount=results.financed_amount, **common),
        effective_rate=calculate_effective_interest_rate(
            financed_amount=results.financed_amount - fee, **common
        ),
    )
