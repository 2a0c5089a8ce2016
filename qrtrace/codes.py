"""
Code string formats: building, validating and parsing.

Individual code::

    PROD-VAPE001-MINT-ORD-HM-2501-01-00001
    │    │       │    │              └── global sequence (5 digits)
    │    │       │    └── order number ORD-{type}-{yymm}-{seq}
    │    │       └── variant code
    │    └── product code
    └── prefix

Master code::

    MASTER-ORD-HM-2501-01-CASE-001

These strings are printed on labels and decoded by scan endpoints, so field
order, padding widths and the separator must not change.
"""

from __future__ import annotations

import re
from typing import Optional

from .config import (
    CASE_TOKEN, CASE_WIDTH, CODE_TOKEN_PATTERN, MASTER_PREFIX,
    ORDER_NUMBER_PATTERN, PRODUCT_PREFIX, SEPARATOR, SEQUENCE_WIDTH,
)
from .models import ParsedCode

# Shapes accepted as "valid". Product/variant tokens may carry dashes here, as
# labels printed by older batches did.
_PRODUCT_SHAPE = re.compile(
    rf"{PRODUCT_PREFIX}-[A-Z0-9\-]+-[A-Z0-9\-]+-{ORDER_NUMBER_PATTERN}-\d{{{SEQUENCE_WIDTH}}}",
    re.ASCII,
)
_MASTER_SHAPE = re.compile(
    rf"{MASTER_PREFIX}-{ORDER_NUMBER_PATTERN}-{CASE_TOKEN}-\d{{{CASE_WIDTH}}}",
    re.ASCII,
)

# Shapes that can be decoded without ambiguity: exactly one dash-free token
# each for product and variant.
_PRODUCT_FIELDS = re.compile(
    rf"{PRODUCT_PREFIX}-(?P<product>{CODE_TOKEN_PATTERN})-(?P<variant>{CODE_TOKEN_PATTERN})"
    rf"-(?P<order>{ORDER_NUMBER_PATTERN})-(?P<sequence>\d{{{SEQUENCE_WIDTH}}})",
    re.ASCII,
)
_MASTER_FIELDS = re.compile(
    rf"{MASTER_PREFIX}-(?P<order>{ORDER_NUMBER_PATTERN})-{CASE_TOKEN}-(?P<case>\d{{{CASE_WIDTH}}})",
    re.ASCII,
)


def generate_product_code(
    product_code: str,
    variant_code: str,
    order_number: str,
    sequence: int,
) -> str:
    """Individual (unit) code, e.g. ``PROD-VAPE001-MINT-ORD-HM-2501-01-00001``."""
    return SEPARATOR.join([
        PRODUCT_PREFIX,
        product_code,
        variant_code,
        order_number,
        f"{sequence:0{SEQUENCE_WIDTH}d}",
    ])


def generate_master_code(order_number: str, case_number: int) -> str:
    """Master (case) code, e.g. ``MASTER-ORD-HM-2501-01-CASE-001``."""
    return SEPARATOR.join([
        MASTER_PREFIX,
        order_number,
        CASE_TOKEN,
        f"{case_number:0{CASE_WIDTH}d}",
    ])


def is_order_number(value: str) -> bool:
    return isinstance(value, str) and re.fullmatch(ORDER_NUMBER_PATTERN, value, re.ASCII) is not None


def is_valid_code(code) -> bool:
    """True when *code* has the individual or master shape. Never raises."""
    if not isinstance(code, str):
        return False
    return bool(_PRODUCT_SHAPE.fullmatch(code) or _MASTER_SHAPE.fullmatch(code))


def parse_code(code) -> Optional[ParsedCode]:
    """
    Extract the embedded fields of a scanned code.

    Returns ``None`` for anything :func:`is_valid_code` rejects, and also for
    valid-looking individual codes whose product/variant portion contains an
    extra dash, since there is no way to tell where one token ends.
    """
    if not is_valid_code(code):
        return None

    if code.startswith(PRODUCT_PREFIX + SEPARATOR):
        m = _PRODUCT_FIELDS.fullmatch(code)
        if m is None:
            return None
        return ParsedCode(
            kind         = "product",
            order_number = m.group("order"),
            product_code = m.group("product"),
            variant_code = m.group("variant"),
            sequence     = int(m.group("sequence")),
        )

    m = _MASTER_FIELDS.fullmatch(code)
    if m is None:
        return None
    return ParsedCode(
        kind         = "master",
        order_number = m.group("order"),
        case_number  = int(m.group("case")),
    )
