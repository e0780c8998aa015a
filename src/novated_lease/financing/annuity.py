from __future__ import annotations


def pmt(rate: float, nper: float, pv: float, fv: float = 0.0, when: int = 0) -> float:
    """
    Periodic payment of an annuity (spreadsheet PMT convention).

    rate: interest rate per period (e.g. 0.08 / 12 for monthly)
    nper: number of payment periods
    pv: present value; money received is positive, money owed negative
    fv: balance left after the last payment (the residual / balloon)
    when: 0 pays at the end of each period, 1 at the start (annuity-due)

    Solves balance_k = balance_{k-1} * (1 + rate) + payment with
    balance_0 = pv and balance_n = -fv.
    """
    if nper == 0:
        raise ValueError("nper must be non-zero")
    if when not in (0, 1):
        raise ValueError("when must be 0 (end of period) or 1 (start of period)")

    if rate == 0:
        return -(pv + fv) / nper

    pvif = (1.0 + rate) ** nper
    payment = rate / (pvif - 1.0) * -(pv * pvif + fv)
    if when == 1:
        payment /= 1.0 + rate
    return float(payment)


def deferred_principal(principal: float, monthly_rate: float, months_deferred: int) -> float:
    # Interest accrues on the principal before the first payment falls due.
    return float(principal) * (1.0 + monthly_rate) ** months_deferred


def monthly_lease_payment(
    *,
    financed_amount: float,
    residual: float,
    annual_rate: float,
    payment_months: int,
    months_deferred: int,
) -> float:
    """Monthly in-advance payment amortizing `financed_amount` down to `residual`."""
    r = annual_rate / 12.0
    return pmt(
        r,
        payment_months,
        -deferred_principal(financed_amount, r, months_deferred),
        residual,
        when=1,
    )
