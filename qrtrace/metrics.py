"""Batch statistics: case fill, product breakdown and packing list."""

from __future__ import annotations
from collections import OrderedDict
from typing import Dict, List

from .models import IndividualCode, QRBatchResult


def product_breakdown(result: QRBatchResult) -> List[dict]:
    """One row per product/variant, in first-seen order."""
    groups: "OrderedDict[str, List[IndividualCode]]" = OrderedDict()
    for code in result.individual_codes:
        groups.setdefault(code.product_key, []).append(code)

    rows = []
    for key, codes in groups.items():
        first, last = codes[0], codes[-1]
        rows.append({
            "product_key":  key,
            "product_code": first.product_code,
            "variant_code": first.variant_code,
            "product_name": first.product_name,
            "variant_name": first.variant_name,
            "total_codes":  len(codes),
            "first_code":   first.code,
            "last_code":    last.code,
            "first_case":   first.case_number,
            "last_case":    last.case_number,
        })
    return rows


def packing_list(result: QRBatchResult) -> List[dict]:
    """One row per master code with the products actually assigned to that case."""
    by_case: Dict[int, "OrderedDict[str, int]"] = {
        m.case_number: OrderedDict() for m in result.master_codes
    }
    for code in result.individual_codes:
        counts = by_case.setdefault(code.case_number, OrderedDict())
        counts[code.display_name] = counts.get(code.display_name, 0) + 1

    rows = []
    for master in result.master_codes:
        counts = by_case[master.case_number]
        rows.append({
            "case_number":    master.case_number,
            "master_code":    master.code,
            "expected_units": master.expected_unit_count,
            "actual_units":   sum(counts.values()),
            "products":       dict(counts),
        })
    return rows


def compute_batch_stats(result: QRBatchResult) -> dict:
    k: dict = {}

    # ── Planning vs. emission ─────────────────────────────────────────────────
    k["order_number"]          = result.order_number
    k["total_base_units"]      = result.total_base_units
    k["total_unique_codes"]    = result.total_unique_codes
    k["individual_code_count"] = result.individual_code_count
    k["planning_discrepancy"]  = result.planning_discrepancy
    k["total_master_codes"]    = result.total_master_codes
    k["units_per_case"]        = result.units_per_case
    k["buffer_percent"]        = result.buffer_percent
    k["buffer_units"]          = result.individual_code_count - result.total_base_units

    # ── Case fill ─────────────────────────────────────────────────────────────
    fill: Dict[int, int] = {m.case_number: 0 for m in result.master_codes}
    for code in result.individual_codes:
        fill[code.case_number] = fill.get(code.case_number, 0) + 1
    k["case_fill"] = fill

    cap = result.units_per_case
    k["overfilled_cases"]  = [c for c, n in fill.items() if n > cap]
    k["underfilled_cases"] = [c for c, n in fill.items() if n < cap]
    k["avg_case_fill_pct"] = (
        sum(fill.values()) / (len(fill) * cap) * 100 if fill else 0.0
    )

    # ── Per line ──────────────────────────────────────────────────────────────
    k["product_breakdown"] = product_breakdown(result)
    k["packing_list"]      = packing_list(result)

    return k
