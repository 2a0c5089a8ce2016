"""Tests for batch generation, buffer rounding and case packing."""

import logging
from collections import Counter
from decimal import Decimal

import pytest

from conftest import make_line
from qrtrace.codes import parse_code
from qrtrace.errors import BatchAlreadyExists, InvalidConfiguration, OrderNotEligible
from qrtrace.generator import (
    buffered_quantity,
    case_count,
    check_eligibility,
    generate_batch,
    generate_batch_from_config,
)
from qrtrace.models import BatchConfig, QRBatchResult


class TestBufferedQuantity:
    @pytest.mark.parametrize("qty,buffer,expected", [
        (95, 10, 105),       # 104.5 rounds up
        (100, 10, 110),      # exact; binary float would give 111
        (100, 7.5, 108),
        (1, 10, 2),
        (3, 0, 3),
        (0, 25, 0),
        (10, Decimal("33.3"), 14),
        (200, 0.1, 201),
    ])
    def test_rounds_up(self, qty, buffer, expected):
        assert buffered_quantity(qty, buffer) == expected

    def test_case_count(self):
        assert case_count(0, 100) == 0
        assert case_count(100, 100) == 1
        assert case_count(101, 100) == 2


class TestSingleLineScenario:
    """ORD-HM-2501-01: 95 × VAPE001/MINT, +10 %, 100 per case."""

    @pytest.fixture
    def result(self, order_no):
        return generate_batch(order_no, [make_line(quantity=95)], 10, 100)

    def test_totals(self, result):
        assert result.total_base_units == 95
        assert result.total_unique_codes == 105
        assert result.total_master_codes == 2
        assert result.individual_code_count == 105
        assert result.planning_discrepancy == 0

    def test_master_codes(self, result):
        assert [(m.code, m.case_number, m.expected_unit_count) for m in result.master_codes] == [
            ("MASTER-ORD-HM-2501-01-CASE-001", 1, 100),
            ("MASTER-ORD-HM-2501-01-CASE-002", 2, 5),
        ]

    def test_sequence_and_case_assignment(self, result):
        codes = result.individual_codes
        assert codes[0].code == "PROD-VAPE001-MINT-ORD-HM-2501-01-00001"
        assert codes[-1].code == "PROD-VAPE001-MINT-ORD-HM-2501-01-00105"
        assert all(c.case_number == 1 for c in codes[:100])
        assert all(c.case_number == 2 for c in codes[100:])
        assert len(result.codes_in_case(2)) == 5

    def test_line_fields_are_copied(self, result):
        c = result.individual_codes[10]
        assert (c.product_id, c.variant_id, c.product_name, c.variant_name) == \
            ("p-vape001", "v-mint", "Cellera Vape Pod", "Mint")


class TestPerLineRounding:
    def test_mixed_lines(self, order_no, mixed_lines):
        # 60, 45, 21 at 10 %: per line 66 + 50 + 24 = 140, batch ceil(138.6) = 139
        result = generate_batch(order_no, mixed_lines, 10, 40)
        assert result.total_base_units == 126
        assert result.total_unique_codes == 139
        assert result.individual_code_count == 140
        assert result.planning_discrepancy == 1
        assert result.total_master_codes == 4
        assert [m.expected_unit_count for m in result.master_codes] == [40, 40, 40, 19]

        per_case = Counter(c.case_number for c in result.individual_codes)
        assert per_case == {1: 40, 2: 40, 3: 40, 4: 20}

        by_variant = Counter(c.variant_code for c in result.individual_codes)
        assert by_variant == {"MINT": 66, "BERRY": 50, "MANGO": 24}

    def test_lines_are_emitted_in_order_with_global_sequence(self, order_no, mixed_lines):
        result = generate_batch(order_no, mixed_lines, 10, 40)
        variants = [c.variant_code for c in result.individual_codes]
        assert variants[65] == "MINT" and variants[66] == "BERRY"
        assert variants[115] == "BERRY" and variants[116] == "MANGO"
        assert result.individual_codes[66].sequence_number == 67

    def test_last_case_absorbs_surplus(self, order_no, sample_lines):
        result = generate_batch(order_no, sample_lines, 10, 5)
        assert result.total_unique_codes == 11
        assert result.total_master_codes == 3
        assert [m.expected_unit_count for m in result.master_codes] == [5, 5, 1]
        assert result.individual_code_count == 20

        per_case = Counter(c.case_number for c in result.individual_codes)
        assert per_case == {1: 5, 2: 5, 3: 10}
        assert max(per_case) == result.total_master_codes


class TestInvariants:
    @pytest.mark.parametrize("buffer,units", [(0, 1), (10, 7), (12.5, 40), (50, 100), (3, 1000)])
    def test_properties_hold(self, order_no, mixed_lines, buffer, units):
        result = generate_batch(order_no, mixed_lines, buffer, units)

        assert sum(m.expected_unit_count for m in result.master_codes) == result.total_unique_codes
        assert [m.case_number for m in result.master_codes] == \
            list(range(1, result.total_master_codes + 1))
        assert all(0 < m.expected_unit_count <= units for m in result.master_codes)

        expected_n = sum(buffered_quantity(l.quantity, buffer) for l in mixed_lines)
        assert [c.sequence_number for c in result.individual_codes] == \
            list(range(1, expected_n + 1))
        assert all(1 <= c.case_number <= result.total_master_codes
                   for c in result.individual_codes)
        assert len({c.code for c in result.individual_codes}) == expected_n

    def test_generated_codes_parse_back(self, order_no, mixed_lines):
        result = generate_batch(order_no, mixed_lines, 10, 40)
        for c in result.individual_codes:
            parsed = parse_code(c.code)
            assert (parsed.product_code, parsed.variant_code, parsed.order_number, parsed.sequence) \
                == (c.product_code, c.variant_code, order_no, c.sequence_number)
        for m in result.master_codes:
            assert parse_code(m.code).case_number == m.case_number

    def test_identical_inputs_give_identical_output(self, order_no, mixed_lines):
        a = generate_batch(order_no, mixed_lines, 10, 40)
        b = generate_batch(order_no, list(mixed_lines), 10, 40)
        assert a == b
        assert [c.code for c in a.individual_codes] == [c.code for c in b.individual_codes]

    def test_result_is_immutable(self, order_no, mixed_lines):
        result = generate_batch(order_no, mixed_lines, 10, 40)
        assert isinstance(result.individual_codes, tuple)
        with pytest.raises(AttributeError):
            result.total_unique_codes = 0


class TestBoundaries:
    def test_zero_quantity_line_contributes_nothing(self, order_no):
        lines = [make_line("A1", "X", 0), make_line("B2", "Y", 10)]
        result = generate_batch(order_no, lines, 10, 100)
        assert result.individual_code_count == 11
        assert {c.product_code for c in result.individual_codes} == {"B2"}

    def test_empty_order(self, order_no):
        result = generate_batch(order_no, [make_line(quantity=0)], 10, 100)
        assert result == QRBatchResult(
            order_number=order_no, buffer_percent=10, units_per_case=100,
        )
        assert result.master_codes == () and result.individual_codes == ()

    def test_no_lines(self, order_no):
        result = generate_batch(order_no, [], 10, 100)
        assert result.total_master_codes == 0

    def test_zero_buffer(self, order_no, mixed_lines):
        result = generate_batch(order_no, mixed_lines, 0, 40)
        assert result.total_unique_codes == result.total_base_units == 126
        assert result.individual_code_count == 126

    def test_exact_multiple_of_case_size(self, order_no):
        result = generate_batch(order_no, [make_line(quantity=100)], 0, 50)
        assert [m.expected_unit_count for m in result.master_codes] == [50, 50]

    def test_dict_lines_are_accepted(self, order_no):
        rows = [{"product_id": "p1", "variant_id": "v1", "product_code": "VAPE001",
                 "variant_code": "MINT", "product_name": "Pod", "variant_name": "Mint", "qty": 3}]
        result = generate_batch(order_no, rows, 0, 10)
        assert result.individual_code_count == 3
        assert result.individual_codes[0].product_id == "p1"

    def test_from_config(self, order_no):
        config = BatchConfig(order_number=order_no, buffer_percent=10, units_per_case=100)
        result = generate_batch_from_config(config, [make_line(quantity=95)])
        assert result.total_master_codes == 2

    def test_non_canonical_order_number_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="qrtrace.generator"):
            result = generate_batch("PO12345", [make_line(quantity=2)], 0, 10)
        assert "does not follow" in caplog.text
        assert result.individual_codes[0].code == "PROD-VAPE001-MINT-PO12345-00001"
        assert parse_code(result.individual_codes[0].code) is None


class TestInvalidConfiguration:
    @pytest.mark.parametrize("units", [0, -5, 2.5, True, None, "100"])
    def test_units_per_case(self, order_no, units):
        with pytest.raises(InvalidConfiguration, match="units_per_case"):
            generate_batch(order_no, [make_line()], 10, units)

    @pytest.mark.parametrize("buffer", [-1, -0.5, float("nan"), float("inf"), "10", None, False])
    def test_buffer_percent(self, order_no, buffer):
        with pytest.raises(InvalidConfiguration, match="buffer_percent"):
            generate_batch(order_no, [make_line()], buffer, 100)

    @pytest.mark.parametrize("qty", [-1, 1.5, "3", None])
    def test_quantity(self, order_no, qty):
        with pytest.raises(InvalidConfiguration, match="quantity"):
            generate_batch(order_no, [make_line(quantity=qty)], 10, 100)

    @pytest.mark.parametrize("order", ["", "   ", "ORD HM 2501 01", " ORD-HM-2501-01", None])
    def test_order_number(self, order):
        with pytest.raises(InvalidConfiguration, match="order_number"):
            generate_batch(order, [make_line()], 10, 100)

    @pytest.mark.parametrize("product,variant", [
        ("VAPE-001", "MINT"),
        ("VAPE001", "MI-NT"),
        ("", "MINT"),
        ("vape001", "MINT"),
        ("VAPE001", "MI NT"),
    ])
    def test_tokens(self, order_no, product, variant):
        with pytest.raises(InvalidConfiguration, match="line 2"):
            generate_batch(order_no, [make_line(), make_line(product, variant, 5)], 10, 100)

    def test_is_a_value_error(self, order_no):
        with pytest.raises(ValueError):
            generate_batch(order_no, [make_line()], 10, 0)

    @pytest.mark.parametrize("line", ["x", 7, None, ["VAPE001", "MINT", 5]])
    def test_line_not_a_mapping(self, order_no, line):
        with pytest.raises(InvalidConfiguration, match="mapping"):
            generate_batch(order_no, [line], 10, 100)


class TestEligibility:
    @pytest.mark.parametrize("status", ["approved", "closed"])
    def test_eligible(self, status):
        check_eligibility("H2M", status)

    def test_wrong_type(self):
        with pytest.raises(OrderNotEligible) as exc:
            check_eligibility("D2H", "approved")
        assert exc.value.order_type == "D2H"

    @pytest.mark.parametrize("status", ["draft", "submitted", "rejected", ""])
    def test_wrong_status(self, status):
        with pytest.raises(OrderNotEligible):
            check_eligibility("H2M", status)

    def test_existing_batch(self):
        with pytest.raises(BatchAlreadyExists):
            check_eligibility("H2M", "approved", has_existing_batch=True)
