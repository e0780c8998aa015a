from __future__ import annotations

from dataclasses import dataclass

from novated_lease.coerce import positive_or_none
from novated_lease.lease.normalizer import VEHICLE_FIELDS, LeaseInputs, LeaseResults

# Input field -> derived result field it is checked against.
_DERIVED_FIELD = {
    "driveaway_cost": "driveaway_cost",
    "financed_amount_manual": "financed_amount",
    "residual_excl": "residual_excl_gst",
    "residual_incl": "residual_incl_gst",
}


@dataclass(frozen=True)
class QuotedValue:
    # A vehicle value the caller supplied that did not drive the calculation.
    field: str
    quoted: float
    derived: float
    difference: float
    matches: bool


def compare_quoted(inputs: LeaseInputs, results: LeaseResults, *, tolerance: float = 1.0) -> list[QuotedValue]:
    if tolerance < 0:
        raise ValueError("tolerance must be >= 0")

    out: list[QuotedValue] = []
    for name in VEHICLE_FIELDS:
        if name == results.basis:
            continue
        quoted = positive_or_none(getattr(inputs, name), name)
        if quoted is None:
            continue
        derived = float(getattr(results, _DERIVED_FIELD[name]))
        diff = quoted - derived
        out.append(
            QuotedValue(
                field=name,
                quoted=quoted,
                derived=derived,
                difference=diff,
                matches=abs(diff) <= tolerance,
            )
        )
    return out
