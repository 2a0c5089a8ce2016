"""
Sinks for a generated batch: the Excel workbook handed to the label printer,
a flat CSV, and the row chunks written to the hosted database.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .config import (
    EXCEL_INSTRUCTIONS, INITIAL_BATCH_STATUS, INITIAL_CODE_STATUS,
    INSERT_CHUNK_SIZE, PRINT_SIZE, TRACKING_BASE_URL,
)
from .metrics import packing_list, product_breakdown
from .models import IndividualCode, QRBatchResult

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="1F3A8A", end_color="1F3A8A", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
TITLE_FONT  = Font(bold=True, size=16, color="1F3A8A")
SECTION_FONT = Font(bold=True, size=12)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ─────────────────────────────────────────────────────────────────────────────
# Tracking URLs & filenames
# ─────────────────────────────────────────────────────────────────────────────

def tracking_url(code: str, kind: str, base_url: Optional[str] = None) -> str:
    """``<base>/track/{master|product}/<code>``"""
    if kind not in ("master", "product"):
        raise ValueError(f"kind must be 'master' or 'product', got {kind!r}")
    base = (base_url or TRACKING_BASE_URL).rstrip("/")
    return f"{base}/track/{kind}/{code}"


def excel_filename(order_number: str, now: Optional[datetime] = None) -> str:
    # UTC, matching the ISO timestamps used for stored batch files
    now = now or datetime.now(timezone.utc)
    return f"QR_Batch_{order_number}_{now.strftime('%Y-%m-%dT%H-%M-%S')}.xlsx"


# ─────────────────────────────────────────────────────────────────────────────
# Excel workbook
# ─────────────────────────────────────────────────────────────────────────────

def _write_table(ws, headers: Sequence[str], rows: Iterable[Sequence], widths: Sequence[int]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for r, values in enumerate(rows, 2):
        for col, value in enumerate(values, 1):
            ws.cell(row=r, column=col, value=value)

    for col, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A2"


def _summary_sheet(ws, result: QRBatchResult, meta: dict, base: str) -> None:
    ws.title = "Summary"
    rows = [
        ["QR Code Batch Report"],
        ["Generated:", meta["generated_at"].strftime("%Y-%m-%d %H:%M:%S")],
        [],
        ["Order Information"],
        ["Order Number:", result.order_number],
        ["Order Date:", meta["order_date"]],
        ["Company:", meta["company_name"]],
        ["Manufacturer:", meta["manufacturer_name"]],
        [],
        ["QR Code Statistics"],
        ["Total Master Codes (Cases):", result.total_master_codes],
        ["Total Individual Codes:", result.total_unique_codes],
        ["Individual Codes Emitted:", result.individual_code_count],
        ["Units per Case:", result.units_per_case],
        ["Buffer Percentage:", f"{result.buffer_percent}%"],
        [],
        ["Tracking System"],
        ["Base URL:", base],
        ["Product Tracking:", f"{base}/track/product/[CODE]"],
        ["Master Tracking:", f"{base}/track/master/[CODE]"],
        [],
        ["Instructions"],
    ] + [[line] for line in EXCEL_INSTRUCTIONS]

    for row in rows:
        ws.append(row)

    ws["A1"].font = TITLE_FONT
    for r in (4, 10, 17, 22):
        ws.cell(row=r, column=1).font = SECTION_FONT
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = 40


def build_workbook(
    result: QRBatchResult,
    order_date: str = "",
    company_name: str = "",
    manufacturer_name: str = "",
    base_url: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> Workbook:
    """Five-sheet workbook: Summary, Master, Individual, Product Breakdown, Packing List."""
    base = (base_url or TRACKING_BASE_URL).rstrip("/")
    meta = {
        "order_date":        order_date,
        "company_name":      company_name,
        "manufacturer_name": manufacturer_name,
        "generated_at":      generated_at or datetime.now(),
    }

    wb = Workbook()
    _summary_sheet(wb.active, result, meta, base)

    # ── Master QR codes ───────────────────────────────────────────────────────
    _write_table(
        wb.create_sheet("Master QR Codes"),
        ["#", "Master QR Code", "Tracking URL", "Case Number",
         "Expected Units", "Order No", "Print Instructions"],
        (
            [i, m.code, tracking_url(m.code, "master", base), m.case_number,
             m.expected_unit_count, result.order_number, PRINT_SIZE["master"]]
            for i, m in enumerate(result.master_codes, 1)
        ),
        [5, 45, 60, 12, 14, 20, 35],
    )

    # ── Individual QR codes ───────────────────────────────────────────────────
    _write_table(
        wb.create_sheet("Individual QR Codes"),
        ["#", "Individual QR Code", "Tracking URL", "Sequence", "Product Code",
         "Variant Code", "Product Name", "Variant", "Case Number", "Order No",
         "Print Instructions"],
        (
            [i, c.code, tracking_url(c.code, "product", base), c.sequence_number,
             c.product_code, c.variant_code, c.product_name, c.variant_name,
             c.case_number, result.order_number, PRINT_SIZE["product"]]
            for i, c in enumerate(result.individual_codes, 1)
        ),
        [5, 50, 60, 10, 15, 15, 30, 20, 12, 20, 35],
    )

    # ── Product breakdown ─────────────────────────────────────────────────────
    _write_table(
        wb.create_sheet("Product Breakdown"),
        ["Product Code", "Variant Code", "Product Name", "Variant",
         "Total QR Codes", "First Code", "Last Code", "Case Range"],
        (
            [p["product_code"], p["variant_code"], p["product_name"], p["variant_name"],
             p["total_codes"], p["first_code"], p["last_code"],
             f"{p['first_case']} - {p['last_case']}"]
            for p in product_breakdown(result)
        ),
        [15, 15, 30, 20, 15, 50, 50, 15],
    )

    # ── Packing list ──────────────────────────────────────────────────────────
    _write_table(
        wb.create_sheet("Packing List"),
        ["Case Number", "Master QR Code", "Expected Units", "Products in Case",
         "Status", "Packed By", "Packed Date"],
        (
            [row["case_number"], row["master_code"], row["expected_units"],
             "; ".join(f"{name} ({n})" for name, n in row["products"].items()),
             "☐ Packed", "", ""]
            for row in packing_list(result)
        ),
        [12, 45, 14, 60, 10, 20, 15],
    )

    return wb


def write_workbook(result: QRBatchResult, path: str, **meta) -> str:
    """Save :func:`build_workbook` output to *path* (a .xlsx file, or a directory that gets the default name)."""
    if os.path.isdir(path) or path.endswith(os.sep) or not path.lower().endswith(".xlsx"):
        os.makedirs(path, exist_ok=True)
        path = os.path.join(path, excel_filename(result.order_number))
    else:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
    build_workbook(result, **meta).save(path)
    logger.info("Wrote workbook %s", path)
    return path


def workbook_bytes(result: QRBatchResult, **meta) -> bytes:
    """Workbook as bytes, ready for an object-storage upload with :data:`XLSX_CONTENT_TYPE`."""
    buf = io.BytesIO()
    build_workbook(result, **meta).save(buf)
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# CSV
# ─────────────────────────────────────────────────────────────────────────────

def codes_to_csv(codes: Iterable[IndividualCode]) -> str:
    """Quick-scan CSV: plain header, every data cell quoted."""
    buf = io.StringIO()
    buf.write("QR Code,Sequence,Product,Variant,Case\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for c in codes:
        writer.writerow([c.code, c.sequence_number, c.product_name, c.variant_name, c.case_number])
    return buf.getvalue().rstrip("\n")


# ─────────────────────────────────────────────────────────────────────────────
# Storage rows
# ─────────────────────────────────────────────────────────────────────────────

def batch_record(
    result: QRBatchResult,
    order_id: str,
    company_id: str,
    excel_file_url: str = "",
    created_by: str = "",
) -> dict:
    """Row for the batch table."""
    return {
        "order_id":           order_id,
        "company_id":         company_id,
        "total_master_codes": result.total_master_codes,
        "total_unique_codes": result.total_unique_codes,
        "buffer_percent":     result.buffer_percent,
        "excel_file_url":     excel_file_url,
        "created_by":         created_by,
        "status":             INITIAL_BATCH_STATUS,
    }


def master_code_rows(result: QRBatchResult, batch_id: str, company_id: str) -> List[dict]:
    return [
        {
            "batch_id":            batch_id,
            "company_id":          company_id,
            "master_code":         m.code,
            "case_number":         m.case_number,
            "expected_unit_count": m.expected_unit_count,
            "status":              INITIAL_CODE_STATUS,
        }
        for m in result.master_codes
    ]


def iter_insert_chunks(
    result: QRBatchResult,
    batch_id: str,
    order_id: str,
    company_id: str,
    chunk_size: int = INSERT_CHUNK_SIZE,
) -> Iterator[List[dict]]:
    """Individual-code rows in lists of at most *chunk_size*."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    codes = result.individual_codes
    for start in range(0, len(codes), chunk_size):
        yield [
            {
                "batch_id":        batch_id,
                "company_id":      company_id,
                "order_id":        order_id,
                "product_id":      c.product_id,
                "variant_id":      c.variant_id,
                "code":            c.code,
                "sequence_number": c.sequence_number,
                "status":          INITIAL_CODE_STATUS,
                "is_active":       True,
            }
            for c in codes[start:start + chunk_size]
        ]


def insert_codes(
    result: QRBatchResult,
    writer: Callable[[List[dict]], None],
    batch_id: str,
    order_id: str,
    company_id: str,
    chunk_size: int = INSERT_CHUNK_SIZE,
) -> int:
    """
    Push individual codes through *writer* one chunk at a time.

    A failing chunk is logged and re-raised; rows from earlier chunks stay
    written. Returns the number of rows written.
    """
    total = result.individual_code_count
    inserted = 0
    for n, chunk in enumerate(
        iter_insert_chunks(result, batch_id, order_id, company_id, chunk_size), 1
    ):
        try:
            writer(chunk)
        except Exception:
            logger.error("Error inserting chunk %d of %s", n, result.order_number)
            raise
        inserted += len(chunk)
        logger.info("Inserted %d/%d QR codes", inserted, total)
    return inserted
