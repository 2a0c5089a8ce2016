"""Shared fixtures for engine tests."""

import pytest

from qrtrace.models import OrderLineSpec

ORDER_NO = "ORD-HM-2501-01"


def make_line(product_code="VAPE001", variant_code="MINT", quantity=95, **kw) -> OrderLineSpec:
    """Build an OrderLineSpec with sensible defaults."""
    return OrderLineSpec(
        product_id=kw.get("product_id", f"p-{product_code.lower()}"),
        variant_id=kw.get("variant_id", f"v-{variant_code.lower()}"),
        product_code=product_code,
        variant_code=variant_code,
        product_name=kw.get("product_name", "Cellera Vape Pod"),
        variant_name=kw.get("variant_name", variant_code.title()),
        quantity=quantity,
    )


@pytest.fixture
def order_no():
    return ORDER_NO


@pytest.fixture
def mixed_lines():
    return [
        make_line("VAPE001", "MINT", 60),
        make_line("VAPE001", "BERRY", 45),
        make_line("VAPE002", "MANGO", 21),
    ]


@pytest.fixture
def sample_lines():
    """Ten single-unit lines: per-line rounding emits 2 codes each at 10 %."""
    return [make_line(f"SMP{i:02d}", "STD", 1) for i in range(1, 11)]
