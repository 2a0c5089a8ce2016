"""
Batch generator: turns an approved order into master and individual codes.

Planning vs. emission
---------------------
Two quantities come out of a run and they are allowed to disagree:

  planning   total_unique_codes = ceil(Σ qty × (1 + buffer/100))   (whole batch)
             total_master_codes = ceil(total_unique_codes / units_per_case)
  emission   each line emits ceil(qty × (1 + buffer/100)) codes    (per line)

Per-line rounding can emit more codes than the batch-level plan. Cases are
filled by a running counter that stops rolling over at the last planned case,
so any surplus lands in that case. Both numbers are returned untouched.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_CEILING, Decimal
from typing import Iterable, List, NamedTuple, Sequence, Tuple, Union

from .codes import generate_master_code, generate_product_code, is_order_number
from .config import (
    CODE_TOKEN_PATTERN, ELIGIBLE_ORDER_STATUSES, ELIGIBLE_ORDER_TYPES,
    MAX_CASE, MAX_SEQUENCE, SEPARATOR,
)
from .errors import BatchAlreadyExists, InvalidConfiguration, OrderNotEligible
from .models import (
    BatchConfig, IndividualCode, MasterCode, Number, OrderLineSpec, QRBatchResult,
)

logger = logging.getLogger(__name__)

LineLike = Union[OrderLineSpec, dict]


# ─────────────────────────────────────────────────────────────────────────────
# Buffer arithmetic
# ─────────────────────────────────────────────────────────────────────────────

def _as_decimal(value: Number) -> Decimal:
    # str() first so 7.1 becomes Decimal("7.1"), not its binary expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


def buffered_quantity(quantity: int, buffer_percent: Number) -> int:
    """``ceil(quantity × (1 + buffer_percent/100))`` in exact decimal arithmetic."""
    scaled = Decimal(quantity) * (100 + _as_decimal(buffer_percent)) / 100
    return int(scaled.to_integral_value(rounding=ROUND_CEILING))


def case_count(unit_count: int, units_per_case: int) -> int:
    return -(-unit_count // units_per_case)


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_token(label: str, value, line_no: int) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidConfiguration(f"line {line_no}: {label} is required")
    if SEPARATOR in value:
        raise InvalidConfiguration(
            f"line {line_no}: {label} {value!r} must not contain {SEPARATOR!r}"
        )
    if not re.fullmatch(CODE_TOKEN_PATTERN, value, re.ASCII):
        raise InvalidConfiguration(
            f"line {line_no}: {label} {value!r} must be upper-case letters and digits"
        )


def validate_request(
    order_number: str,
    lines: Sequence[OrderLineSpec],
    buffer_percent: Number,
    units_per_case: int,
) -> None:
    """Raise :class:`InvalidConfiguration` for the first problem found."""
    if not _is_int(units_per_case) or units_per_case <= 0:
        raise InvalidConfiguration(
            f"units_per_case must be a positive integer, got {units_per_case!r}"
        )

    if isinstance(buffer_percent, bool) or not isinstance(buffer_percent, (int, float, Decimal)):
        raise InvalidConfiguration(f"buffer_percent must be a number, got {buffer_percent!r}")
    buffer = _as_decimal(buffer_percent)
    if not buffer.is_finite() or buffer < 0:
        raise InvalidConfiguration(
            f"buffer_percent must be a finite, non-negative number, got {buffer_percent!r}"
        )

    if not isinstance(order_number, str) or not order_number.strip():
        raise InvalidConfiguration("order_number is required")
    if order_number != order_number.strip() or any(ch.isspace() for ch in order_number):
        raise InvalidConfiguration(f"order_number {order_number!r} must not contain whitespace")

    for line_no, line in enumerate(lines, start=1):
        if not _is_int(line.quantity) or line.quantity < 0:
            raise InvalidConfiguration(
                f"line {line_no}: quantity must be a non-negative integer, got {line.quantity!r}"
            )
        _check_token("product_code", line.product_code, line_no)
        _check_token("variant_code", line.variant_code, line_no)


def check_eligibility(order_type: str, status: str, has_existing_batch: bool = False) -> None:
    """
    Gate applied before generation: H2M orders only, approved or closed, and
    at most one batch per order.
    """
    if order_type not in ELIGIBLE_ORDER_TYPES:
        raise OrderNotEligible(
            f"order type {order_type!r} does not receive QR codes",
            order_type=order_type, status=status,
        )
    if status not in ELIGIBLE_ORDER_STATUSES:
        raise OrderNotEligible(
            f"order status {status!r} is not eligible; expected one of "
            f"{', '.join(ELIGIBLE_ORDER_STATUSES)}",
            order_type=order_type, status=status,
        )
    if has_existing_batch:
        raise BatchAlreadyExists("QR batch already exists for this order")


# ─────────────────────────────────────────────────────────────────────────────
# Case packing
# ─────────────────────────────────────────────────────────────────────────────

class Packing(NamedTuple):
    """Running position while codes are emitted, threaded from line to line."""

    next_sequence: int = 1
    case_number:   int = 1
    codes_in_case: int = 0


def _place(state: Packing, units_per_case: int, last_case: int) -> Packing:
    """Position for the next code: roll to a new case only while one is planned."""
    if state.codes_in_case >= units_per_case and state.case_number < last_case:
        return Packing(state.next_sequence, state.case_number + 1, 0)
    return state


def _emit_line(
    line: OrderLineSpec,
    order_number: str,
    unit_count: int,
    state: Packing,
    units_per_case: int,
    last_case: int,
) -> Tuple[List[IndividualCode], Packing]:
    codes: List[IndividualCode] = []
    for _ in range(unit_count):
        state = _place(state, units_per_case, last_case)
        seq = state.next_sequence
        codes.append(IndividualCode(
            code            = generate_product_code(
                line.product_code, line.variant_code, order_number, seq),
            sequence_number = seq,
            product_id      = line.product_id,
            variant_id      = line.variant_id,
            product_code    = line.product_code,
            variant_code    = line.variant_code,
            product_name    = line.product_name,
            variant_name    = line.variant_name,
            case_number     = state.case_number,
        ))
        state = Packing(seq + 1, state.case_number, state.codes_in_case + 1)
    return codes, state


def _plan_master_codes(
    order_number: str, total_unique_codes: int, units_per_case: int,
) -> List[MasterCode]:
    total_cases = case_count(total_unique_codes, units_per_case)
    masters = []
    for case_no in range(1, total_cases + 1):
        if case_no == total_cases:
            expected = total_unique_codes - (case_no - 1) * units_per_case
        else:
            expected = units_per_case
        masters.append(MasterCode(
            code                = generate_master_code(order_number, case_no),
            case_number         = case_no,
            expected_unit_count = expected,
        ))
    return masters


# ─────────────────────────────────────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────────────────────────────────────

def generate_batch(
    order_number: str,
    lines: Iterable[LineLike],
    buffer_percent: Number,
    units_per_case: int,
) -> QRBatchResult:
    """
    Generate the full code batch for one order.

    The request is validated as a whole before anything is built, so the
    caller gets either a complete result or an :class:`InvalidConfiguration`.
    Output depends only on the arguments.
    """
    specs = [
        line if isinstance(line, OrderLineSpec) else OrderLineSpec.from_dict(line)
        for line in lines
    ]
    validate_request(order_number, specs, buffer_percent, units_per_case)

    if not is_order_number(order_number):
        logger.warning(
            "Order number %r does not follow ORD-XX-YYMM-NN; "
            "generated codes will not be recognised by the parser", order_number,
        )

    total_base_units   = sum(line.quantity for line in specs)
    total_unique_codes = buffered_quantity(total_base_units, buffer_percent)
    master_codes       = _plan_master_codes(order_number, total_unique_codes, units_per_case)
    total_master_codes = len(master_codes)

    individual_codes: List[IndividualCode] = []
    state = Packing()
    for line in specs:
        unit_count = buffered_quantity(line.quantity, buffer_percent)
        codes, state = _emit_line(
            line, order_number, unit_count, state, units_per_case, total_master_codes,
        )
        logger.debug(
            "%s: %d ordered → %d codes (cases up to %d)",
            line.product_key, line.quantity, unit_count, state.case_number,
        )
        individual_codes.extend(codes)

    if len(individual_codes) > MAX_SEQUENCE:
        logger.warning(
            "%s: %d individual codes exceed the %d-code sequence range",
            order_number, len(individual_codes), MAX_SEQUENCE,
        )
    if total_master_codes > MAX_CASE:
        logger.warning(
            "%s: %d cases exceed the %d-case range", order_number, total_master_codes, MAX_CASE,
        )

    result = QRBatchResult(
        order_number       = order_number,
        master_codes       = tuple(master_codes),
        individual_codes   = tuple(individual_codes),
        total_master_codes = total_master_codes,
        total_unique_codes = total_unique_codes,
        total_base_units   = total_base_units,
        buffer_percent     = buffer_percent,
        units_per_case     = units_per_case,
    )

    if result.planning_discrepancy:
        logger.info(
            "%s: per-line rounding emitted %d codes against %d planned (%+d)",
            order_number, result.individual_code_count, total_unique_codes,
            result.planning_discrepancy,
        )
    logger.info(
        "Generated QR batch %s: %d master codes, %d unique codes",
        order_number, total_master_codes, total_unique_codes,
    )
    return result


def generate_batch_from_config(config: BatchConfig, lines: Iterable[LineLike]) -> QRBatchResult:
    return generate_batch(
        config.order_number, lines, config.buffer_percent, config.units_per_case,
    )
