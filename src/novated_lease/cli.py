from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict
from typing import Any

import pandas as pd

from novated_lease.api import lease_payload
from novated_lease.financing.rate_solver import (
    calculate_byo_payment,
    calculate_effective_interest_rate,
    solve_lease_rates,
)
from novated_lease.financing.schedule import lease_schedule
from novated_lease.lease.normalizer import (
    DEFAULT_MONTHS_DEFERRED,
    LeaseInputs,
    ValidationError,
    calculate_novated_lease,
)
from novated_lease.storage.store import JsonFileStore

logger = logging.getLogger(__name__)

STORE_KEY = "novated_lease_inputs"

# argparse dest -> LeaseInputs field
_INPUT_FLAGS = {
    "term_years": "lease_term_years",
    "fbt_base_value": "fbt_base_value",
    "driveaway_cost": "driveaway_cost",
    "financed_amount": "financed_amount_manual",
    "residual_excl": "residual_excl",
    "residual_incl": "residual_incl",
    "documentation_fee": "documentation_fee",
    "payment_amount": "payment_amount",
    "payments_per_year": "payments_per_year",
    "months_deferred": "months_deferred",
}

DERIVED_COLUMNS = [
    "derived_basis",
    "derived_driveaway_cost",
    "derived_financed_amount",
    "derived_residual_percent",
    "derived_residual_excl_gst",
    "derived_residual_incl_gst",
    "base_rate",
    "effective_rate",
    "error",
]


def _mkdirp(path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)


def _print_json(out: dict[str, Any]) -> None:
    print(json.dumps(out, indent=2, sort_keys=True))


def _inputs_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {field: getattr(args, dest) for dest, field in _INPUT_FLAGS.items() if getattr(args, dest) is not None}


def cmd_calculate(args: argparse.Namespace) -> int:
    raw = _inputs_from_args(args)
    store = JsonFileStore(args.store) if args.store else None
    if store is not None:
        saved = store.load(STORE_KEY)
        if isinstance(saved, dict):
            raw = {**saved, **raw}

    try:
        inputs = LeaseInputs.from_mapping(raw)
        out = lease_payload(inputs)
    except ValidationError as e:
        raise SystemExit(f"invalid lease inputs: {e}") from e

    if store is not None:
        store.save(STORE_KEY, raw)
        logger.info("saved inputs to %s", args.store)

    out["inputs"] = asdict(inputs)
    _print_json(out)
    return 0


def cmd_solve_rate(args: argparse.Namespace) -> int:
    rate = calculate_effective_interest_rate(
        payment_amount=args.payment_amount,
        payments_per_year=args.payments_per_year,
        lease_term_years=args.term_years,
        financed_amount=args.financed_amount,
        residual_excl_gst=args.residual_excl_gst,
        months_deferred=args.months_deferred,
    )
    _print_json({"effective_interest_rate": rate})
    return 0


def cmd_byo_payment(args: argparse.Namespace) -> int:
    try:
        payment = calculate_byo_payment(
            financed_amount=args.financed_amount,
            residual_excl_gst=args.residual_excl_gst,
            lease_term_years=args.term_years,
            payments_per_year=args.payments_per_year,
            interest_rate=args.interest_rate,
            months_deferred=args.months_deferred,
        )
    except ValueError as e:
        raise SystemExit(str(e)) from e
    _print_json(
        {
            "interest_rate": args.interest_rate,
            "payments_per_year": args.payments_per_year,
            "payment_per_period": payment,
            "annual_payment": payment * args.payments_per_year,
        }
    )
    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    try:
        df = lease_schedule(
            financed_amount=args.financed_amount,
            residual_excl_gst=args.residual_excl_gst,
            lease_term_years=args.term_years,
            interest_rate=args.interest_rate,
            months_deferred=args.months_deferred,
        )
    except ValueError as e:
        raise SystemExit(str(e)) from e
    _mkdirp(args.out_csv)
    df.to_csv(args.out_csv, index=False)
    _print_json(
        {
            "out_csv": args.out_csv,
            "n_rows": int(len(df)),
            "total_paid": float(df["payment"].sum()),
            "total_interest": float(df["interest"].sum()),
            "final_balance": float(df["closing_balance"].iloc[-1]),
        }
    )
    return 0


def price_quote_row(row: dict[str, Any]) -> dict[str, Any]:
    """Derived columns for one CSV row; failures land in the `error` column."""
    out: dict[str, Any] = {c: None for c in DERIVED_COLUMNS}
    try:
        inputs = LeaseInputs.from_mapping(row)
        results = calculate_novated_lease(inputs)
    except ValidationError as e:
        out["error"] = str(e)
        return out
    rates = solve_lease_rates(inputs, results)
    out.update(
        derived_basis=results.basis,
        derived_driveaway_cost=results.driveaway_cost,
        derived_financed_amount=results.financed_amount,
        derived_residual_percent=results.residual_percent,
        derived_residual_excl_gst=results.residual_excl_gst,
        derived_residual_incl_gst=results.residual_incl_gst,
        base_rate=rates.base_rate,
        effective_rate=rates.effective_rate,
    )
    return out


def price_quotes(df: pd.DataFrame) -> pd.DataFrame:
    derived = pd.DataFrame([price_quote_row(row) for row in df.to_dict(orient="records")], columns=DERIVED_COLUMNS)
    derived.index = df.index
    return pd.concat([df, derived], axis=1)


def cmd_price_quotes(args: argparse.Namespace) -> int:
    df = pd.read_csv(args.csv)
    out_df = price_quotes(df)
    n_errors = int(out_df["error"].notna().sum())
    if n_errors:
        logger.warning("%d of %d quotes could not be priced", n_errors, len(out_df))
    _mkdirp(args.out_csv)
    out_df.to_csv(args.out_csv, index=False)
    _print_json({"out_csv": args.out_csv, "n_rows": int(len(out_df)), "n_errors": n_errors})
    return 0


def _add_lease_amount_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--financed-amount", type=float, required=True)
    p.add_argument("--residual-excl-gst", type=float, required=True)
    p.add_argument("--term-years", type=float, required=True)
    p.add_argument("--months-deferred", type=int, default=DEFAULT_MONTHS_DEFERRED)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="novated-lease")
    p.add_argument("--log-level", default="WARNING", help="Python logging level (e.g. INFO, DEBUG).")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("calculate", help="Normalize vehicle values into financed amount and residual.")
    c.add_argument("--term-years", type=float, default=None)
    c.add_argument("--fbt-base-value", type=float, default=None)
    c.add_argument("--driveaway-cost", type=float, default=None)
    c.add_argument("--financed-amount", type=float, default=None, help="Financed amount as quoted by the financier.")
    c.add_argument("--residual-excl", type=float, default=None, help="Residual value excluding GST.")
    c.add_argument("--residual-incl", type=float, default=None, help="Residual value including GST.")
    c.add_argument("--documentation-fee", type=float, default=None)
    c.add_argument("--payment-amount", type=float, default=None, help="Known payment per period, to solve rates.")
    c.add_argument("--payments-per-year", type=float, default=None)
    c.add_argument("--months-deferred", type=int, default=None)
    c.add_argument(
        "--store",
        default=None,
        help="JSON file of saved inputs; flags given here override saved values and are saved back.",
    )
    c.set_defaults(func=cmd_calculate)

    s = sub.add_parser("solve-rate", help="Implied annual interest rate for a known payment (null if none).")
    _add_lease_amount_args(s)
    s.add_argument("--payment-amount", type=float, required=True)
    s.add_argument("--payments-per-year", type=float, default=12.0)
    s.set_defaults(func=cmd_solve_rate)

    b = sub.add_parser("byo-payment", help="Payment per period of a self-financed loan at a known rate.")
    _add_lease_amount_args(b)
    b.add_argument("--interest-rate", type=float, required=True, help="Nominal annual rate (e.g. 0.08).")
    b.add_argument("--payments-per-year", type=float, default=12.0)
    b.set_defaults(func=cmd_byo_payment)

    sc = sub.add_parser("schedule", help="Write the monthly balance schedule to CSV.")
    _add_lease_amount_args(sc)
    sc.add_argument("--interest-rate", type=float, required=True, help="Nominal annual rate (e.g. 0.08).")
    sc.add_argument("--out-csv", required=True)
    sc.set_defaults(func=cmd_schedule)

    q = sub.add_parser("price-quotes", help="Normalize every quote in a CSV and solve its rates.")
    q.add_argument("--csv", required=True)
    q.add_argument("--out-csv", required=True)
    q.set_defaults(func=cmd_price_quotes)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
