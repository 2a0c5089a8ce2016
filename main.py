#!/usr/bin/env python3
"""
QRTrace — Traceability code engine
==================================

Generate the master (case) and individual (unit) QR codes for an approved
order, print the batch summary, and optionally export the workbook / CSV
handed to the label printer. Also validates and decodes scanned codes.

Usage
-----
    python main.py --demo single                 # built-in order
    python main.py --order order.json --xlsx out/ # JSON order, write workbook
    python main.py --demo herbal --csv codes.csv --no-charts
    python main.py --parse MASTER-ORD-HM-2501-01-CASE-001 PROD-VAPE001-MINT-ORD-HM-2501-01-00001
"""

import argparse
import json
import logging
import sys
import time
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from rich.logging import RichHandler

from qrtrace.codes import parse_code
from qrtrace.config import DEFAULT_BUFFER_PERCENT, DEFAULT_UNITS_PER_CASE, DEMO_ORDERS
from qrtrace.errors import InvalidConfiguration, TraceError
from qrtrace.export import codes_to_csv, write_workbook
from qrtrace.generator import check_eligibility, generate_batch
from qrtrace.metrics import compute_batch_stats
from qrtrace.models import QRBatchResult
from qrtrace.reports import (
    console,
    plot_case_fill_chart,
    print_banner,
    print_batch_summary,
    print_packing_list,
    print_parsed_code,
    print_product_breakdown,
)

REPORT_DIR = "reports"

logger = logging.getLogger("qrtrace")


# ─────────────────────────────────────────────────────────────────────────────
# Order loading
# ─────────────────────────────────────────────────────────────────────────────

def load_order(path: str) -> dict:
    """
    Read an order from JSON. ``order_type`` / ``status`` are optional; when
    present the order must pass the eligibility gate.
    """
    with open(path, encoding="utf-8") as fh:
        order = json.load(fh)
    if not isinstance(order, Mapping):
        raise InvalidConfiguration(f"{path}: order must be a JSON object, got {type(order).__name__}")
    lines = order.get("lines", [])
    if not isinstance(lines, list) or not all(isinstance(row, Mapping) for row in lines):
        raise InvalidConfiguration(f"{path}: 'lines' must be a list of objects")
    if "order_type" in order or "status" in order:
        check_eligibility(
            order.get("order_type", ""),
            order.get("status", ""),
            bool(order.get("has_existing_batch", False)),
        )
    return order


def _percent(value: str) -> Union[int, Decimal]:
    """argparse type: exact percentage, an int when it has no fractional part."""
    try:
        pct = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid percentage: {value!r}")
    if not pct.is_finite():
        raise argparse.ArgumentTypeError(f"invalid percentage: {value!r}")
    return int(pct) if pct == pct.to_integral_value() else pct


def run_order(
    order: dict,
    buffer_percent: Optional[Union[int, Decimal]] = None,
    units_per_case: Optional[int] = None,
) -> QRBatchResult:
    buffer = buffer_percent if buffer_percent is not None else order.get("buffer_percent")
    units  = units_per_case if units_per_case is not None else order.get("units_per_case")
    return generate_batch(
        order_number   = order.get("order_number", ""),
        lines          = order.get("lines", []),
        # an order without its own settings falls back to the house defaults
        buffer_percent = DEFAULT_BUFFER_PERCENT if buffer is None else buffer,
        units_per_case = DEFAULT_UNITS_PER_CASE if units is None else units,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Main
# ─────────────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="QRTrace — case & unit QR code batches")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--demo", choices=list(DEMO_ORDERS.keys()),
                        help="Generate a built-in demo order")
    source.add_argument("--order", metavar="FILE",
                        help="Generate from a JSON order file")
    source.add_argument("--parse", nargs="+", metavar="CODE",
                        help="Validate and decode scanned codes")
    parser.add_argument("--buffer", type=_percent, default=None,
                        help=f"Override buffer percent (order default, else {DEFAULT_BUFFER_PERCENT})")
    parser.add_argument("--units-per-case", type=int, default=None,
                        help=f"Override case capacity (order default, else {DEFAULT_UNITS_PER_CASE})")
    parser.add_argument("--xlsx", metavar="PATH",
                        help="Write the label workbook to PATH (file or directory)")
    parser.add_argument("--csv", metavar="FILE",
                        help="Write individual codes as CSV")
    parser.add_argument("--no-charts", action="store_true",
                        help="Skip the Matplotlib case-fill chart")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    print_banner()

    # ── Scan mode ─────────────────────────────────────────────────────────────
    if args.parse:
        console.rule("[bold]Code validation[/bold]")
        for code in args.parse:
            print_parsed_code(code, parse_code(code))
        console.print()
        return 0

    # ── Generation mode ───────────────────────────────────────────────────────
    try:
        if args.demo:
            order = DEMO_ORDERS[args.demo]
            title = f"{order['label']} · {order['description']}"
        else:
            order = load_order(args.order)
            title = args.order
        start = time.perf_counter()
        result = run_order(order, args.buffer, args.units_per_case)
    except (TraceError, OSError, json.JSONDecodeError) as exc:
        logger.error("%s", exc)
        return 2

    elapsed = time.perf_counter() - start
    console.print(
        f"[dim]Generated {result.individual_code_count:,d} codes in "
        f"{result.total_master_codes:,d} cases ({elapsed * 1000:.1f} ms)[/dim]\n"
    )

    stats = compute_batch_stats(result)
    print_batch_summary(stats, title)
    print_product_breakdown(stats)
    print_packing_list(stats)

    # ── Exports ───────────────────────────────────────────────────────────────
    try:
        if args.xlsx:
            path = write_workbook(
                result, args.xlsx,
                order_date        = order.get("order_date", ""),
                company_name      = order.get("company_name", ""),
                manufacturer_name = order.get("manufacturer_name", ""),
            )
            console.print(f"  [green]✓[/green]  {path}")

        if args.csv:
            with open(args.csv, "w", encoding="utf-8", newline="") as fh:
                fh.write(codes_to_csv(result.individual_codes))
            console.print(f"  [green]✓[/green]  {args.csv}")

        if not args.no_charts:
            path = plot_case_fill_chart(result, stats, REPORT_DIR)
            if path:
                console.print(f"  [green]✓[/green]  {path}")
    except OSError as exc:
        logger.error("Export failed: %s", exc)
        return 1

    console.print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
