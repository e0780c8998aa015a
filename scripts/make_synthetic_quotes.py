from __future__ import annotations

import argparse
import os

import numpy as np
import pandas as pd


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True)
    ap.add_argument("--rows", type=int, default=500)
    ap.add_argument("--seed", type=int, default=0)
    args = ap.parse_args()

    rng = np.random.default_rng(args.seed)

    models = ["Model 3", "Corolla", "RAV4", "Ioniq 5", "CX-5", "Ranger", "Outlander"]
    bases = ["driveaway", "financed", "residual_excl", "residual_incl"]

    model = rng.choice(models, size=args.rows)
    basis = rng.choice(bases, size=args.rows, p=[0.55, 0.15, 0.15, 0.15])
    term = rng.integers(1, 6, size=args.rows)
    fbt = rng.normal(48000, 12000, size=args.rows).clip(20000, 110000).round(0)
    fee = rng.choice([0.0, 350.0, 500.0], size=args.rows)

    # Dealers price 5-15% above the FBT base value once on-road costs are added.
    driveaway = (fbt * rng.uniform(1.05, 1.15, size=args.rows)).round(0)
    min_value = np.minimum(fbt / 11.0, 6334.0)
    financed = driveaway - min_value + fee
    residual_pct = np.round(0.6563 / 7 * (8 - term), 4)
    residual_excl = residual_pct * (financed - fee)

    # Synthetic quoted rate; the payment is what a financier would quote at that rate.
    rate = rng.uniform(0.06, 0.13, size=args.rows)
    deferred = 2
    n = term * 12 - deferred
    r = rate / 12.0
    pv = financed * (1.0 + r) ** deferred
    pvif = (1.0 + r) ** n
    monthly = r / (pvif - 1.0) * (pv * pvif - residual_excl) / (1.0 + r)
    payments_per_year = rng.choice([12, 26, 52], size=args.rows)
    payment = (monthly * n / (payments_per_year * term)).round(2)

    df = pd.DataFrame(
        {
            "model": model,
            "leaseTermYears": term.astype(int),
            "fbtBaseValue": fbt.astype(float),
            "documentationFee": fee.astype(float),
            "driveawayCost": np.where(basis == "driveaway", driveaway, np.nan),
            "financedAmountManual": np.where(basis == "financed", financed.round(2), np.nan),
            "residualExcl": np.where(basis == "residual_excl", residual_excl.round(2), np.nan),
            "residualIncl": np.where(basis == "residual_incl", (residual_excl * 1.1).round(2), np.nan),
            "paymentAmount": payment.astype(float),
            "paymentsPerYear": payments_per_year.astype(int),
            "monthsDeferred": deferred,
            "quotedRate": rate.round(4),
        }
    )

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    df.to_csv(args.out, index=False)
    print(f"wrote {args.out} rows={len(df)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
