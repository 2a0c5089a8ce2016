"""Data-model classes shared across the engine."""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Tuple, Union

from .config import DEFAULT_BUFFER_PERCENT, DEFAULT_UNITS_PER_CASE
from .errors import InvalidConfiguration

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class OrderLineSpec:
    """One product/variant line of an order, with its un-buffered quantity."""

    product_id:    str = ""
    variant_id:    str = ""
    product_code:  str = ""
    variant_code:  str = ""
    product_name:  str = ""
    variant_name:  str = ""
    quantity:      int = 0

    @classmethod
    def from_dict(cls, row: dict) -> "OrderLineSpec":
        """Build a line from an order_items-style mapping (``qty`` is accepted for ``quantity``)."""
        if not isinstance(row, Mapping):
            raise InvalidConfiguration(f"order line must be a mapping, got {type(row).__name__}")
        quantity = row.get("quantity", row.get("qty", 0))
        return cls(
            product_id   = str(row.get("product_id", "")),
            variant_id   = str(row.get("variant_id", "")),
            product_code = row.get("product_code", ""),
            variant_code = row.get("variant_code", ""),
            product_name = row.get("product_name", ""),
            variant_name = row.get("variant_name", ""),
            quantity     = quantity,
        )

    @property
    def product_key(self) -> str:
        return f"{self.product_code}-{self.variant_code}"


@dataclass(frozen=True)
class BatchConfig:
    """Per-request settings for a generation run."""

    order_number:   str    = ""
    buffer_percent: Number = DEFAULT_BUFFER_PERCENT
    units_per_case: int    = DEFAULT_UNITS_PER_CASE


@dataclass(frozen=True)
class MasterCode:
    """Case-level code; one per physical box."""

    code:                str = ""
    case_number:         int = 0
    expected_unit_count: int = 0


@dataclass(frozen=True)
class IndividualCode:
    """Unit-level code; one per physical product unit."""

    code:            str = ""
    sequence_number: int = 0
    product_id:      str = ""
    variant_id:      str = ""
    product_code:    str = ""
    variant_code:    str = ""
    product_name:    str = ""
    variant_name:    str = ""
    case_number:     int = 0

    @property
    def product_key(self) -> str:
        return f"{self.product_code}-{self.variant_code}"

    @property
    def display_name(self) -> str:
        return f"{self.product_name} - {self.variant_name}"


@dataclass(frozen=True)
class QRBatchResult:
    """
    Complete output of one generation run.

    ``total_unique_codes`` and ``total_master_codes`` come from batch-level
    planning; ``individual_codes`` come from per-line emission. The two counts
    may differ and both are kept.
    """

    order_number:       str                        = ""
    master_codes:       Tuple[MasterCode, ...]     = field(default_factory=tuple)
    individual_codes:   Tuple[IndividualCode, ...] = field(default_factory=tuple)
    total_master_codes: int                        = 0
    total_unique_codes: int                        = 0
    total_base_units:   int                        = 0
    buffer_percent:     Number                     = 0
    units_per_case:     int                        = DEFAULT_UNITS_PER_CASE

    @property
    def individual_code_count(self) -> int:
        return len(self.individual_codes)

    @property
    def planning_discrepancy(self) -> int:
        """Emitted individual codes minus planned unique codes (0 when they agree)."""
        return self.individual_code_count - self.total_unique_codes

    def codes_in_case(self, case_number: int) -> Tuple[IndividualCode, ...]:
        return tuple(c for c in self.individual_codes if c.case_number == case_number)


@dataclass(frozen=True)
class ParsedCode:
    """Fields recovered from a scanned code string."""

    kind:          str           = ""      # "product" | "master"
    order_number:  str           = ""
    product_code:  Optional[str] = None
    variant_code:  Optional[str] = None
    sequence:      Optional[int] = None
    case_number:   Optional[int] = None

    @property
    def is_master(self) -> bool:
        return self.kind == "master"
