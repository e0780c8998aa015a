from __future__ import annotations

import json

import pandas as pd
import pytest

from novated_lease.cli import main, price_quotes


def _run(capsys, argv: list[str]) -> dict:
    assert main(argv) == 0
    return json.loads(capsys.readouterr().out)


def test_calculate_prints_results(capsys):
    out = _run(
        capsys,
        [
            "calculate",
            "--term-years", "3",
            "--fbt-base-value", "40000",
            "--driveaway-cost", "45000",
            "--documentation-fee", "500",
            "--payment-amount", "900",
            "--payments-per-year", "12",
        ],
    )
    assert abs(out["result"]["financed_amount"] - 41863.64) < 0.01
    assert out["rates"]["base_rate"] is not None
    assert out["inputs"]["months_deferred"] == 2


def test_calculate_merges_saved_inputs(capsys, tmp_path):
    store = str(tmp_path / "inputs.json")
    _run(capsys, ["calculate", "--store", store, "--term-years", "3", "--fbt-base-value", "40000", "--driveaway-cost", "45000"])

    # Only the changed field is passed; the rest comes from the store.
    out = _run(capsys, ["calculate", "--store", store, "--term-years", "4"])
    assert out["result"]["residual_percent"] == 0.375
    assert out["inputs"]["driveaway_cost"] == 45000

    saved = json.loads((tmp_path / "inputs.json").read_text())
    assert saved["novated_lease_inputs"]["lease_term_years"] == 4


def test_calculate_invalid_inputs_exit(capsys):
    with pytest.raises(SystemExit, match="no vehicle value"):
        main(["calculate", "--term-years", "3", "--fbt-base-value", "40000"])


def test_solve_rate_no_solution_is_null(capsys):
    out = _run(
        capsys,
        [
            "solve-rate",
            "--financed-amount", "41863.64",
            "--residual-excl-gst", "19391.27",
            "--term-years", "3",
            "--payment-amount", "50",
        ],
    )
    assert out == {"effective_interest_rate": None}


def test_byo_payment_command(capsys):
    out = _run(
        capsys,
        [
            "byo-payment",
            "--financed-amount", "41863.64",
            "--residual-excl-gst", "19391.27",
            "--term-years", "3",
            "--interest-rate", "0.08",
            "--payments-per-year", "26",
        ],
    )
    assert out["payment_per_period"] > 0
    assert abs(out["annual_payment"] - out["payment_per_period"] * 26) < 1e-9


def test_schedule_command_writes_csv(capsys, tmp_path):
    out_csv = tmp_path / "out" / "schedule.csv"
    out = _run(
        capsys,
        [
            "schedule",
            "--financed-amount", "30000",
            "--residual-excl-gst", "10000",
            "--term-years", "2",
            "--interest-rate", "0.07",
            "--out-csv", str(out_csv),
        ],
    )
    assert out["n_rows"] == 24
    assert abs(out["final_balance"] - 10000) < 1e-6
    assert len(pd.read_csv(out_csv)) == 24


def test_price_quotes_marks_bad_rows():
    df = pd.DataFrame(
        {
            "leaseTermYears": [3, 3, 8],
            "fbtBaseValue": [40000, 40000, 40000],
            "documentationFee": [500, 500, 0],
            "driveawayCost": [45000, None, None],
            "residualExcl": [None, None, 10000],
            "paymentAmount": [900, None, None],
            "paymentsPerYear": [12, None, None],
        }
    )
    out = price_quotes(df)
    assert len(out) == 3
    assert out.loc[0, "derived_basis"] == "driveaway_cost"
    assert out.loc[0, "base_rate"] is not None
    assert out.loc[1, "error"] == "no vehicle value"
    assert out.loc[2, "error"] == "residual percent is zero"


def test_price_quotes_command(capsys, tmp_path):
    src = tmp_path / "quotes.csv"
    pd.DataFrame(
        {"leaseTermYears": [2, 5], "fbtBaseValue": [47527, 60000], "driveawayCost": [50000, 70000]}
    ).to_csv(src, index=False)
    out_csv = tmp_path / "priced.csv"
    out = _run(capsys, ["price-quotes", "--csv", str(src), "--out-csv", str(out_csv)])
    assert out == {"out_csv": str(out_csv), "n_rows": 2, "n_errors": 0}
    priced = pd.read_csv(out_csv)
    assert list(priced["derived_residual_percent"]) == [0.5625, 0.2813]
