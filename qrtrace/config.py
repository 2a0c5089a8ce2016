# QRTrace — Traceability code engine settings
# Quantities are physical units; percentages are plain numbers (10 → +10 %).

import os

# ── Application metadata ──────────────────────────────────────────────────────
APP_NAME     = "QRTrace"
APP_VERSION  = "1.0"
APP_TAGLINE  = "Case & unit QR traceability"

# ── Code grammar ──────────────────────────────────────────────────────────────
# Individual: PROD-{product}-{variant}-{order_no}-{sequence:05d}
# Master:     MASTER-{order_no}-CASE-{case:03d}
SEPARATOR       = "-"
PRODUCT_PREFIX  = "PROD"
MASTER_PREFIX   = "MASTER"
CASE_TOKEN      = "CASE"
SEQUENCE_WIDTH  = 5     # 00001 … 99999
CASE_WIDTH      = 3     # 001 … 999

MAX_SEQUENCE = 10 ** SEQUENCE_WIDTH - 1
MAX_CASE     = 10 ** CASE_WIDTH - 1

# Order numbers follow ORD-{type}-{yymm}-{seq}, e.g. ORD-HM-2501-01
ORDER_NUMBER_PATTERN = r"ORD-[A-Z]{2}-\d{4}-\d{2}"

# Product / variant codes are embedded verbatim and must stay dash-free
CODE_TOKEN_PATTERN = r"[A-Z0-9]+"

# ── Batch defaults ────────────────────────────────────────────────────────────
# Used when an order does not carry its own buffer / case capacity
DEFAULT_BUFFER_PERCENT = 10
DEFAULT_UNITS_PER_CASE = 100

# ── Order eligibility ─────────────────────────────────────────────────────────
# Only headquarters-to-manufacturer orders get printed codes
ELIGIBLE_ORDER_TYPES    = ("H2M",)
ELIGIBLE_ORDER_STATUSES = ("approved", "closed")

# ── Storage sink ──────────────────────────────────────────────────────────────
INSERT_CHUNK_SIZE     = 500         # rows per bulk insert request
INITIAL_CODE_STATUS   = "pending"
INITIAL_BATCH_STATUS  = "generated"

# ── Tracking URLs ─────────────────────────────────────────────────────────────
DEFAULT_TRACKING_BASE_URL = "http://www.serapod2u.com"
TRACKING_BASE_URL = os.environ.get("QRTRACE_BASE_URL", DEFAULT_TRACKING_BASE_URL)

# ── Spreadsheet layout ────────────────────────────────────────────────────────
PRINT_SIZE = {
    "master":  "Print at 5cm x 5cm minimum size",
    "product": "Print at 2cm x 2cm minimum size",
}

EXCEL_INSTRUCTIONS = [
    "1. Print Master QR codes and attach to cases/boxes",
    "2. Print Individual QR codes and attach to each product unit",
    "3. Scan Master QR when packing products into cases",
    "4. Scan Individual QR codes during manufacturing process",
    "5. Each QR code contains a tracking URL that can be scanned",
]

# ── Demo orders ───────────────────────────────────────────────────────────────
# Sample H2M orders for the CLI; each line mirrors an order_items row
DEMO_ORDERS = {
    "single": {
        "label":          "Single line",
        "description":    "One flavour, 95 units, +10 % buffer, 100 per case",
        "order_number":   "ORD-HM-2501-01",
        "buffer_percent": 10,
        "units_per_case": 100,
        "lines": [
            {
                "product_id":   "p-vape001",
                "variant_id":   "v-mint",
                "product_code": "VAPE001",
                "variant_code": "MINT",
                "product_name": "Cellera Vape Pod",
                "variant_name": "Mint",
                "quantity":     95,
            },
        ],
    },
    "herbal": {
        "label":          "Mixed flavours",
        "description":    "Three variants of one pod, 40 per case, +5 % buffer",
        "order_number":   "ORD-HM-2502-07",
        "buffer_percent": 5,
        "units_per_case": 40,
        "lines": [
            {
                "product_id":   "p-vape001",
                "variant_id":   "v-mint",
                "product_code": "VAPE001",
                "variant_code": "MINT",
                "product_name": "Cellera Vape Pod",
                "variant_name": "Mint",
                "quantity":     60,
            },
            {
                "product_id":   "p-vape001",
                "variant_id":   "v-berry",
                "product_code": "VAPE001",
                "variant_code": "BERRY",
                "product_name": "Cellera Vape Pod",
                "variant_name": "Mixed Berry",
                "quantity":     45,
            },
            {
                "product_id":   "p-vape001",
                "variant_id":   "v-mango",
                "product_code": "VAPE001",
                "variant_code": "MANGO",
                "product_name": "Cellera Vape Pod",
                "variant_name": "Mango Ice",
                "quantity":     21,
            },
        ],
    },
    "samples": {
        "label":          "Sample packs",
        "description":    "Many tiny lines; per-line rounding overfills the last case",
        "order_number":   "ORD-HM-2503-02",
        "buffer_percent": 10,
        "units_per_case": 5,
        "lines": [
            {
                "product_id":   f"p-smp{i:02d}",
                "variant_id":   f"v-smp{i:02d}",
                "product_code": f"SMP{i:02d}",
                "variant_code": "STD",
                "product_name": f"Sample Pack {i}",
                "variant_name": "Standard",
                "quantity":     1,
            }
            for i in range(1, 11)
        ],
    },
}
