from __future__ import annotations

import pandas as pd

from novated_lease.financing.annuity import monthly_lease_payment
from novated_lease.lease.normalizer import DEFAULT_MONTHS_DEFERRED

SCHEDULE_COLUMNS = ["month", "opening_balance", "payment", "interest", "closing_balance"]


def lease_schedule(
    *,
    financed_amount: float,
    residual_excl_gst: float,
    lease_term_years: float,
    interest_rate: float,
    months_deferred: int = DEFAULT_MONTHS_DEFERRED,
) -> pd.DataFrame:
    """
    Month-by-month balance of the lease.

    The first `months_deferred` months carry no payment and accrue interest.
    Each later month the payment is made in advance, then interest accrues on
    what is left. After the last month the balance equals the residual.
    """
    if financed_amount < 0:
        raise ValueError("financed_amount must be >= 0")
    if residual_excl_gst < 0:
        raise ValueError("residual_excl_gst must be >= 0")
    if months_deferred < 0:
        raise ValueError("months_deferred must be >= 0")

    # One row per calendar month, so the term must be a whole number of months.
    total_months = int(round(lease_term_years * 12))
    if abs(lease_term_years * 12 - total_months) > 1e-9:
        raise ValueError(f"lease_term_years must be a whole number of months; got {lease_term_years}")
    payment_months = total_months - months_deferred
    if payment_months <= 0:
        raise ValueError("months_deferred must leave at least one payment month")

    r = interest_rate / 12.0
    pmt = monthly_lease_payment(
        financed_amount=financed_amount,
        residual=residual_excl_gst,
        annual_rate=interest_rate,
        payment_months=payment_months,
        months_deferred=months_deferred,
    )

    rows = []
    bal = float(financed_amount)
    for m in range(1, total_months + 1):
        payment = pmt if m > months_deferred else 0.0
        interest = (bal - payment) * r
        closing = bal - payment + interest
        rows.append(
            {
                "month": m,
                "opening_balance": bal,
                "payment": payment,
                "interest": interest,
                "closing_balance": closing,
            }
        )
        bal = closing

    return pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)


def remaining_balance(
    *,
    financed_amount: float,
    residual_excl_gst: float,
    lease_term_years: float,
    interest_rate: float,
    months_elapsed: int,
    months_deferred: int = DEFAULT_MONTHS_DEFERRED,
) -> float:
    """Balance owed at the end of `months_elapsed` months (0 returns the financed amount)."""
    if months_elapsed < 0:
        raise ValueError("months_elapsed must be >= 0")
    df = lease_schedule(
        financed_amount=financed_amount,
        residual_excl_gst=residual_excl_gst,
        lease_term_years=lease_term_years,
        interest_rate=interest_rate,
        months_deferred=months_deferred,
    )
    if months_elapsed > len(df):
        raise ValueError("months_elapsed must be <= the lease term in months")
    if months_elapsed == 0:
        return float(financed_amount)
    return float(df["closing_balance"].iloc[months_elapsed - 1])
