from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .services.utils import ZERO, margin_factor


class QuoteMode(str, Enum):
    BRANDED = "branded"
    UNBRANDED = "unbranded"


@dataclass(frozen=True)
class BrandingCharge:
    branding_type: Optional[str] = None
    branding_position: Optional[str] = None
    branding_size: Optional[str] = None
    colour_count: Decimal = ZERO
    unit_price_ex_vat: Decimal = ZERO  # per unit of the basket line, pre-margin
    setup_fee_ex_vat: Decimal = ZERO  # once per line, pre-margin
    logo_file: Optional[str] = None


@dataclass(frozen=True)
class BasketLine:
    product_price_ex_vat: Decimal = ZERO
    quantity_available: Decimal = ZERO
    quantity_requested: Decimal = ZERO
    branding_charges: Tuple[BrandingCharge, ...] = ()
    # descriptive fields of the raw line, passed through to the output untouched
    extra: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def effective_quantity(self) -> Decimal:
        return min(self.quantity_requested, self.quantity_available)

    @property
    def branding_unit_sum(self) -> Decimal:
        return sum((b.unit_price_ex_vat for b in self.branding_charges), ZERO)

    @property
    def branding_setup_sum(self) -> Decimal:
        return sum((b.setup_fee_ex_vat for b in self.branding_charges), ZERO)

    @property
    def is_chargeable(self) -> bool:
        return self.quantity_available != ZERO and self.effective_quantity > ZERO


@dataclass(frozen=True)
class PricedLine:
    line: BasketLine
    base_price_rounded: int
    capped_quantity: Decimal
    is_out_of_stock: bool
    line_total_ex_vat: int = 0
    unit_price_ex_vat: int = 0


@dataclass(frozen=True)
class QuoteTotals:
    items_subtotal_ex_vat: int = 0
    delivery_fee_ex_vat: int = 0
    subtotal_ex_vat: int = 0
    vat_total: int = 0
    grand_total: int = 0
    pre_margin_basket_total: int = 0
    has_chargeable_line: bool = False


@dataclass(frozen=True)
class QuoteSettings:
    margin_rate: Decimal = Decimal("0.25")
    vat_rate: Decimal = Decimal("0.15")
    delivery_fee_flat: Decimal = Decimal("99")
    delivery_free_threshold: Decimal = Decimal("1000")

    @property
    def margin_factor(self) -> Decimal:
        return margin_factor(self.margin_rate)

    @property
    def markup_rate(self) -> Decimal:
        """Equivalent markup on cost, e.g. 25% margin -> 0.3333..."""
        return self.margin_factor - 1


@dataclass(frozen=True)
class BrandingRate:
    """One row of a supplier branding price table."""
    branding_type: str
    branding_size: str
    branding_position: Optional[str] = None
    unit_price: Decimal = ZERO
    setup_fee: Decimal = ZERO


@dataclass
class QuoteResult:
    customer: Dict[str, Any]
    shipping_address: Dict[str, Any]
    lines: List[PricedLine]
    totals: QuoteTotals
    settings: QuoteSettings
    mode: QuoteMode = QuoteMode.BRANDED

    @property
    def margin_rate(self) -> Decimal:
        return self.settings.margin_rate

    @property
    def markup_rate(self) -> Decimal:
        return self.settings.markup_rate

    @property
    def delivery_fee(self) -> int:
        return self.totals.delivery_fee_ex_vat
