from __future__ import annotations

import pytest

from novated_lease.financing.annuity import monthly_lease_payment
from novated_lease.financing.schedule import SCHEDULE_COLUMNS, lease_schedule, remaining_balance


def test_schedule_ends_at_residual():
    df = lease_schedule(
        financed_amount=41863.64, residual_excl_gst=19391.27, lease_term_years=3, interest_rate=0.09, months_deferred=2
    )
    assert list(df.columns) == SCHEDULE_COLUMNS
    assert len(df) == 36
    assert abs(df["closing_balance"].iloc[-1] - 19391.27) < 1e-6


def test_deferred_months_accrue_interest_without_payment():
    df = lease_schedule(
        financed_amount=30_000, residual_excl_gst=10_000, lease_term_years=2, interest_rate=0.12, months_deferred=2
    )
    assert (df["payment"].iloc[:2] == 0.0).all()
    assert abs(df["closing_balance"].iloc[1] - 30_000 * 1.01**2) < 1e-6

    expected = monthly_lease_payment(
        financed_amount=30_000, residual=10_000, annual_rate=0.12, payment_months=22, months_deferred=2
    )
    assert (abs(df["payment"].iloc[2:] - expected) < 1e-9).all()


def test_zero_rate_schedule_is_straight_line():
    df = lease_schedule(
        financed_amount=12_000, residual_excl_gst=0.0, lease_term_years=1, interest_rate=0.0, months_deferred=0
    )
    assert abs(df["interest"].sum()) < 1e-12
    assert (abs(df["payment"] - 1000.0) < 1e-9).all()
    assert abs(df["closing_balance"].iloc[-1]) < 1e-9


def test_remaining_balance():
    kw = dict(financed_amount=30_000, residual_excl_gst=10_000, lease_term_years=2, interest_rate=0.07)
    assert remaining_balance(months_elapsed=0, **kw) == 30_000
    assert abs(remaining_balance(months_elapsed=24, **kw) - 10_000) < 1e-6
    with pytest.raises(ValueError):
        remaining_balance(months_elapsed=25, **kw)


def test_schedule_rejects_deferral_covering_whole_term():
    with pytest.raises(ValueError):
        lease_schedule(
            financed_amount=30_000, residual_excl_gst=10_000, lease_term_years=1, interest_rate=0.07, months_deferred=12
        )


def test_schedule_rejects_partial_month_terms():
    with pytest.raises(ValueError, match="whole number of months"):
        lease_schedule(financed_amount=30_000, residual_excl_gst=10_000, lease_term_years=1.04, interest_rate=0.07)

    df = lease_schedule(financed_amount=30_000, residual_excl_gst=10_000, lease_term_years=1.5, interest_rate=0.07)
    assert len(df) == 18
