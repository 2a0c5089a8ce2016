"""
Rich console output and Matplotlib case-fill chart.
"""

from __future__ import annotations

import os
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import APP_NAME, APP_TAGLINE, APP_VERSION, CASE_WIDTH, SEQUENCE_WIDTH
from .models import ParsedCode, QRBatchResult

console = Console()

# One colour per product/variant, cycled
PRODUCT_PALETTE = ["#2E86AB", "#A23B72", "#F18F01", "#2EC4B6", "#E63946", "#6A4C93"]


# ─────────────────────────────────────────────────────────────────────────────
# Banner
# ─────────────────────────────────────────────────────────────────────────────

def print_banner() -> None:
    lines = [
        f"[bold white]{APP_NAME}[/bold white]",
        f"[dim]{APP_TAGLINE}[/dim]",
        "",
        "[bold cyan]Traceability Code Engine[/bold cyan]",
        f"[dim]v{APP_VERSION}  ·  unit codes {SEQUENCE_WIDTH}-digit  ·  "
        f"case codes {CASE_WIDTH}-digit[/dim]",
    ]
    console.print(Panel("\n".join(lines), style="bold blue", expand=False))
    console.print()


# ─────────────────────────────────────────────────────────────────────────────
# Batch summary
# ─────────────────────────────────────────────────────────────────────────────

def print_batch_summary(stats: dict, title: str = "") -> None:
    console.rule(f"[bold]{stats['order_number']}[/bold]" + (f"  —  {title}" if title else ""))

    t = Table(box=box.SIMPLE_HEAD, show_header=True, header_style="bold magenta")
    t.add_column("Metric",     style="cyan",  min_width=30)
    t.add_column("Value",      style="white", justify="right", min_width=12)
    t.add_column("Note",       style="dim",   min_width=20)

    disc = stats["planning_discrepancy"]
    disc_note = "[green]plan matches[/green]" if disc == 0 else f"[yellow]{disc:+d} vs plan[/yellow]"

    t.add_row("── Planning ────────────────────", "", "")
    t.add_row("  Base units ordered",     f"{stats['total_base_units']:,d}", "")
    t.add_row("  Buffer",                 f"{stats['buffer_percent']}%", "")
    t.add_row("  Unique codes (planned)", f"{stats['total_unique_codes']:,d}", "")
    t.add_row("  Units per case",         f"{stats['units_per_case']:,d}", "")
    t.add_row("  Master codes (cases)",   f"{stats['total_master_codes']:,d}", "")

    t.add_row("── Emitted ─────────────────────", "", "")
    t.add_row("  Individual codes",       f"{stats['individual_code_count']:,d}", disc_note)
    t.add_row("  Buffer units",           f"{stats['buffer_units']:,d}", "")
    t.add_row("  Avg case fill",          f"{stats['avg_case_fill_pct']:.1f}%", "")
    over = stats["overfilled_cases"]
    t.add_row("  Overfilled cases",       f"{len(over):,d}",
              f"[red]case {', '.join(map(str, over))}[/red]" if over else "")

    console.print(t)
    console.print()


def print_product_breakdown(stats: dict) -> None:
    t = Table(title="Product Breakdown", box=box.SIMPLE_HEAD, header_style="bold magenta")
    t.add_column("Product / Variant", style="cyan")
    t.add_column("Codes",      justify="right")
    t.add_column("First code", style="dim")
    t.add_column("Last code",  style="dim")
    t.add_column("Cases",      justify="right")

    for p in stats["product_breakdown"]:
        t.add_row(
            f"{p['product_name']} · {p['variant_name']}",
            f"{p['total_codes']:,d}",
            p["first_code"],
            p["last_code"],
            f"{p['first_case']}–{p['last_case']}",
        )
    console.print(t)
    console.print()


def print_packing_list(stats: dict) -> None:
    t = Table(title="Packing List", box=box.SIMPLE_HEAD, header_style="bold magenta")
    t.add_column("Case",      justify="right")
    t.add_column("Master code", style="cyan")
    t.add_column("Expected",  justify="right")
    t.add_column("Actual",    justify="right")
    t.add_column("Products in case")

    for row in stats["packing_list"]:
        exp, act = row["expected_units"], row["actual_units"]
        colour = "green" if act == exp else ("red" if act > exp else "yellow")
        t.add_row(
            str(row["case_number"]),
            row["master_code"],
            f"{exp:,d}",
            f"[{colour}]{act:,d}[/{colour}]",
            "; ".join(f"{name} ({n})" for name, n in row["products"].items()),
        )
    console.print(t)
    console.print()


def print_parsed_code(code: str, parsed: Optional[ParsedCode]) -> None:
    if parsed is None:
        console.print(f"  [red]✗[/red]  {code}  [dim]unrecognised[/dim]")
        return
    if parsed.is_master:
        detail = f"order {parsed.order_number} · case {parsed.case_number}"
    else:
        detail = (
            f"order {parsed.order_number} · {parsed.product_code}/{parsed.variant_code} "
            f"· seq {parsed.sequence}"
        )
    console.print(f"  [green]✓[/green]  {code}  [dim]{parsed.kind}: {detail}[/dim]")


# ─────────────────────────────────────────────────────────────────────────────
# Matplotlib chart
# ─────────────────────────────────────────────────────────────────────────────

def _style_ax(ax, title):
    ax.set_title(title, fontsize=9, fontweight="bold", pad=6)
    ax.tick_params(labelsize=7)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.grid(axis="y", alpha=0.3)


def plot_case_fill_chart(result: QRBatchResult, stats: dict, out_dir: str) -> str:
    """
    Stacked bar chart of units per case by product, against case capacity.
    Returns the saved file path, or "" for an empty batch.
    """
    if not result.master_codes:
        return ""

    cases = [m.case_number for m in result.master_codes]
    keys  = [p["product_key"] for p in stats["product_breakdown"]]
    index = {c: i for i, c in enumerate(cases)}

    counts = np.zeros((len(keys), len(cases)))
    key_idx = {k: i for i, k in enumerate(keys)}
    for code in result.individual_codes:
        counts[key_idx[code.product_key], index[code.case_number]] += 1

    fig, ax = plt.subplots(figsize=(max(6, len(cases) * 0.6), 4))
    bottom = np.zeros(len(cases))
    for i, key in enumerate(keys):
        ax.bar(cases, counts[i], bottom=bottom,
               color=PRODUCT_PALETTE[i % len(PRODUCT_PALETTE)], label=key, alpha=0.85, width=0.8)
        bottom += counts[i]

    expected = [m.expected_unit_count for m in result.master_codes]
    ax.step(cases, expected, where="mid", color="black", linewidth=1.0,
            linestyle="--", alpha=0.7, label="Expected units")
    ax.axhline(result.units_per_case, color="red", linewidth=0.8,
               linestyle=":", alpha=0.7, label="Case capacity")

    ax.set_xlabel("Case", fontsize=8)
    ax.set_ylabel("Units", fontsize=8)
    ax.set_xticks(cases)
    ax.legend(fontsize=6, loc="upper right")
    _style_ax(ax, f"{result.order_number}  ·  Units per Case")

    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, f"case_fill_{result.order_number}.png")
    fig.savefig(path, dpi=130, bbox_inches="tight")
    plt.close(fig)
    return path
