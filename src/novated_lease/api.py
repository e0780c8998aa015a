from __future__ import annotations

import logging
from dataclasses import asdict
from http import HTTPStatus
from typing import Any, Callable

from novated_lease.coerce import to_number
from novated_lease.financing.rate_solver import (
    calculate_byo_payment,
    calculate_effective_interest_rate,
    solve_lease_rates,
)
from novated_lease.financing.schedule import lease_schedule
from novated_lease.lease.normalizer import (
    DEFAULT_MONTHS_DEFERRED,
    LeaseInputs,
    calculate_novated_lease,
    snake_case_keys,
)
from novated_lease.lease.quotes import compare_quoted

logger = logging.getLogger(__name__)

# Served by GET /api/calculate.
SAMPLE_INPUTS = {
    "driveawayCost": 45000,
    "fbtBaseValue": 40000,
    "documentationFee": 500,
    "leaseTermYears": 3,
}

Response = tuple[int, dict[str, Any]]


def _required(body: dict[str, Any], name: str) -> float:
    value = to_number(body.get(name), name)
    if value is None:
        raise ValueError(f"{name} is required")
    return value


def lease_payload(inputs: LeaseInputs) -> dict[str, Any]:
    results = calculate_novated_lease(inputs)
    rates = solve_lease_rates(inputs, results)
    return {
        "result": asdict(results),
        "rates": asdict(rates),
        "quoted": [asdict(q) for q in compare_quoted(inputs, results)],
    }


def _calculate(body: dict[str, Any]) -> Response:
    return HTTPStatus.OK, lease_payload(LeaseInputs.from_mapping(body))


def _effective_rate(body: dict[str, Any]) -> Response:
    body = snake_case_keys(body)
    rate = calculate_effective_interest_rate(
        payment_amount=body.get("payment_amount"),
        payments_per_year=body.get("payments_per_year"),
        lease_term_years=body.get("lease_term_years"),
        financed_amount=body.get("financed_amount"),
        residual_excl_gst=body.get("residual_excl_gst"),
        months_deferred=body.get("months_deferred", DEFAULT_MONTHS_DEFERRED),
    )
    return HTTPStatus.OK, {"effective_interest_rate": rate}


def _months_deferred(body: dict[str, Any]) -> int:
    value = to_number(body.get("months_deferred"), "months_deferred")
    if value is None:
        return DEFAULT_MONTHS_DEFERRED
    if value != int(value):
        raise ValueError(f"months_deferred must be a whole number; got {value}")
    return int(value)


def _byo_payment(body: dict[str, Any]) -> Response:
    body = snake_case_keys(body)
    payment = calculate_byo_payment(
        financed_amount=_required(body, "financed_amount"),
        residual_excl_gst=_required(body, "residual_excl_gst"),
        lease_term_years=_required(body, "lease_term_years"),
        payments_per_year=_required(body, "payments_per_year"),
        interest_rate=_required(body, "interest_rate"),
        months_deferred=_months_deferred(body),
    )
    return HTTPStatus.OK, {"payment_per_period": payment}


def _schedule(body: dict[str, Any]) -> Response:
    body = snake_case_keys(body)
    df = lease_schedule(
        financed_amount=_required(body, "financed_amount"),
        residual_excl_gst=_required(body, "residual_excl_gst"),
        lease_term_years=_required(body, "lease_term_years"),
        interest_rate=_required(body, "interest_rate"),
        months_deferred=_months_deferred(body),
    )
    return HTTPStatus.OK, {"schedule": df.to_dict(orient="records")}


POST_ROUTES: dict[str, Callable[[dict[str, Any]], Response]] = {
    "/api/calculate": _calculate,
    "/api/effective-rate": _effective_rate,
    "/api/byo-payment": _byo_payment,
    "/api/schedule": _schedule,
}


def handle(method: str, path: str, body: Any = None) -> Response:
    """Route one JSON request to the engine. Returns (status, payload)."""
    path = path.split("?", 1)[0].rstrip("/")
    try:
        if method == "GET" and path == "/api/calculate":
            return _calculate(dict(SAMPLE_INPUTS))

        if method == "POST" and path in POST_ROUTES:
            if not isinstance(body, dict):
                return HTTPStatus.BAD_REQUEST, {"error": "Expected JSON object body"}
            return POST_ROUTES[path](body)

        return HTTPStatus.NOT_FOUND, {"error": "Unknown endpoint"}
    except ValueError as e:
        logger.info("rejected %s %s: %s", method, path, e)
        return HTTPStatus.BAD_REQUEST, {"error": str(e)}
