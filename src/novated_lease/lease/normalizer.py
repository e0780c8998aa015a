from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping

from novated_lease.coerce import positive_or_none, round_half_up, to_number

logger = logging.getLogger(__name__)

GST_UPLIFT = 1.1  # 10% GST
# GST credit the financier can claim on the vehicle is capped (luxury car limit).
GST_OFFSET_CAP = 6334.0
# Residual percentage decays linearly from 65.63% at 1 year to 0% at 8 years.
RESIDUAL_SLOPE = 0.6563 / 7
RESIDUAL_ZERO_TERM = 8
DEFAULT_MONTHS_DEFERRED = 2

# Highest priority first. Exactly one of these drives the calculation.
VEHICLE_FIELDS = ("driveaway_cost", "financed_amount_manual", "residual_excl", "residual_incl")


class ValidationError(ValueError):
    pass


@dataclass(frozen=True)
class LeaseInputs:
    lease_term_years: float
    fbt_base_value: float
    driveaway_cost: float | None = None
    financed_amount_manual: float | None = None
    residual_excl: float | None = None
    residual_incl: float | None = None
    documentation_fee: float = 0.0
    payment_amount: float | None = None
    payments_per_year: float | None = None
    months_deferred: int = DEFAULT_MONTHS_DEFERRED

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LeaseInputs":
        """
        Build inputs from form-style data.

        Keys may be snake_case or the camelCase used by browser forms
        (``driveawayCost``). Values may be numbers or numeric strings;
        blanks and non-finite numbers are treated as absent.
        """
        normalized = snake_case_keys(data)
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in normalized:
                continue
            try:
                value = to_number(normalized[f.name], f.name)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            if value is None:
                continue
            if f.name == "months_deferred":
                if value != int(value):
                    raise ValidationError(f"months_deferred must be a whole number; got {value}")
                value = int(value)
            kwargs[f.name] = value

        if "lease_term_years" not in kwargs:
            raise ValidationError("lease term is required")
        if "fbt_base_value" not in kwargs:
            raise ValidationError("fbt base value is required")
        return cls(**kwargs)


@dataclass(frozen=True)
class LeaseResults:
    basis: str
    gst: float
    min_value: float
    driveaway_cost: float
    financed_amount: float
    residual_percent: float
    residual_excl_gst: float
    residual_incl_gst: float


def _snake_case(key: str) -> str:
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out).lstrip("_")


def snake_case_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    # "driveawayCost" -> "driveaway_cost"; snake_case keys pass through.
    return {_snake_case(k): v for k, v in data.items()}


def residual_percent_for_term(lease_term_years: float) -> float:
    return round_half_up(RESIDUAL_SLOPE * (RESIDUAL_ZERO_TERM - lease_term_years), 4)


def gst_offset(fbt_base_value: float) -> float:
    return min(fbt_base_value / 11.0, GST_OFFSET_CAP)


def select_basis(inputs: LeaseInputs) -> tuple[str, float]:
    """Return (field_name, value) of the highest-priority usable vehicle value."""
    for name in VEHICLE_FIELDS:
        try:
            value = positive_or_none(getattr(inputs, name), name)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if value is not None:
            return name, value
    raise ValidationError("no vehicle value")


def calculate_novated_lease(inputs: LeaseInputs | Mapping[str, Any]) -> LeaseResults:
    if not isinstance(inputs, LeaseInputs):
        inputs = LeaseInputs.from_mapping(inputs)

    try:
        term = to_number(inputs.lease_term_years, "lease_term_years")
        fbt = to_number(inputs.fbt_base_value, "fbt_base_value")
        fee = to_number(inputs.documentation_fee, "documentation_fee")
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if term is None or term <= 0:
        raise ValidationError("lease term must be a positive number of years")
    if fbt is None:
        raise ValidationError("fbt base value must be a finite number")
    if fbt < 0:
        raise ValidationError("fbt base value must be >= 0")
    if fee is None:
        fee = 0.0
    if fee < 0:
        raise ValidationError("documentation fee must be >= 0")

    basis, value = select_basis(inputs)
    residual_percent = residual_percent_for_term(term)
    min_value = gst_offset(fbt)

    if basis == "driveaway_cost":
        financed_amount = value - min_value + fee
    elif basis == "financed_amount_manual":
        financed_amount = value
    else:
        if residual_percent == 0:
            raise ValidationError("residual percent is zero")
        if residual_percent < 0:
            raise ValidationError(f"residual percent is negative for a {term:g} year term")
        residual_excl = value if basis == "residual_excl" else value / GST_UPLIFT
        financed_amount = residual_excl / residual_percent + fee

    residual_excl_gst = residual_percent * (financed_amount - fee)
    logger.debug("lease basis=%s financed_amount=%.2f residual_percent=%.4f", basis, financed_amount, residual_percent)

    return LeaseResults(
        basis=basis,
        gst=fbt / 11.0,
        min_value=min_value,
        driveaway_cost=financed_amount + min_value - fee,
        financed_amount=financed_amount,
        residual_percent=residual_percent,
        residual_excl_gst=residual_excl_gst,
        residual_incl_gst=residual_excl_gst * GST_UPLIFT,
    )
