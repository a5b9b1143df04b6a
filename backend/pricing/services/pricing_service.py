from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..dataclasses import (
    BasketLine,
    BrandingRate,
    PricedLine,
    QuoteMode,
    QuoteResult,
    QuoteSettings,
    QuoteTotals,
)
from .branding_rates import apply_branding_rates
from .logo_resolver import LogoIndex
from .normalizer import (
    extract_basket,
    normalize_customer,
    normalize_line,
    normalize_shipping_address,
    unwrap_body,
)
from .utils import (
    ONE,
    ZERO,
    d,
    margin_factor,
    round_currency,
    round_half_up,
    to_cents,
    to_nearest_unit,
)

logger = logging.getLogger(__name__)


def bundle_cost(line: BasketLine, qty: Decimal) -> Decimal:
    """Pre-margin ex-VAT cost: product and branding units scale with qty, setup fees once."""
    return (
        line.product_price_ex_vat * qty
        + line.branding_unit_sum * qty
        + line.branding_setup_sum
    )


def _effective_factor(margin_rate) -> Decimal:
    factor = margin_factor(margin_rate)
    if factor == ONE and margin_rate not in (0, ZERO):
        logger.warning("Margin rate %r is unusable; pricing without markup", margin_rate)
    return factor


def price_line(line: BasketLine, margin_rate) -> PricedLine:
    """
    Price one basket line (ex-VAT, after margin, whole currency units).

    Requested quantity is capped to stock. Lines with no stock or nothing to
    charge are returned zeroed and flagged out of stock. The unit price is
    derived from the already-rounded line total, so unit * qty may drift from
    the line total by a few units.
    """
    qty = line.effective_quantity
    base_price = round_currency(line.product_price_ex_vat)

    if line.quantity_available == ZERO or qty <= ZERO:
        return PricedLine(
            line=line,
            base_price_rounded=base_price,
            capped_quantity=qty,
            is_out_of_stock=True,
        )

    line_exact = bundle_cost(line, qty) * _effective_factor(margin_rate)
    line_total = round_currency(line_exact)
    unit_price = round_half_up(d(line_total) / qty)

    logger.debug(
        "Priced line qty=%s cost=%s total=%s unit=%s",
        qty, bundle_cost(line, qty), line_total, unit_price,
    )
    return PricedLine(
        line=line,
        base_price_rounded=base_price,
        capped_quantity=qty,
        is_out_of_stock=False,
        line_total_ex_vat=line_total,
        unit_price_ex_vat=unit_price,
    )


def pre_margin_cost(lines: Iterable[BasketLine]) -> int:
    """
    Cost basis of the chargeable lines before markup. Each line is taken to
    cents, the cents are summed, and the sum is collapsed to whole units once.
    """
    cents = 0
    for line in lines:
        if not line.is_chargeable:
            continue
        cents += to_cents(bundle_cost(line, line.effective_quantity))
    return to_nearest_unit(cents)


def delivery_fee_for(items_subtotal: int, has_chargeable_line: bool, settings: QuoteSettings) -> int:
    """
    Flat fee unless the items subtotal *including* VAT reaches the free
    threshold. Delivery itself is not part of the threshold figure.
    """
    if not has_chargeable_line:
        return 0
    items_vat = round_half_up(d(items_subtotal) * d(settings.vat_rate))
    if items_subtotal + items_vat >= d(settings.delivery_free_threshold):
        return 0
    return round_currency(settings.delivery_fee_flat)


def totalize(
    priced_lines: Sequence[PricedLine],
    settings: QuoteSettings,
    basket: Optional[Iterable[BasketLine]] = None,
) -> QuoteTotals:
    """
    Basket totals. VAT is charged once, on items + delivery.

    `basket` defaults to the lines behind `priced_lines`; it only feeds the
    pre-margin reference total.
    """
    items_subtotal = sum(p.line_total_ex_vat for p in priced_lines)
    has_chargeable = any(p.line_total_ex_vat > 0 for p in priced_lines)

    delivery = delivery_fee_for(items_subtotal, has_chargeable, settings)
    subtotal = items_subtotal + delivery
    vat = round_half_up(d(subtotal) * d(settings.vat_rate))

    if basket is None:
        basket = [p.line for p in priced_lines]

    return QuoteTotals(
        items_subtotal_ex_vat=items_subtotal,
        delivery_fee_ex_vat=delivery,
        subtotal_ex_vat=subtotal,
        vat_total=vat,
        grand_total=subtotal + vat,
        pre_margin_basket_total=pre_margin_cost(basket),
        has_chargeable_line=has_chargeable,
    )


def normalize_basket(
    raw_lines: Sequence[Any],
    reference_items: Optional[Sequence[Any]] = None,
    mode: QuoteMode = QuoteMode.BRANDED,
    branding_rates: Optional[Mapping[Any, Sequence[BrandingRate]]] = None,
) -> List[BasketLine]:
    """Normalize raw lines and attach resolved logos (and supplier branding prices)."""
    if mode != QuoteMode.BRANDED:
        return [normalize_line(raw, mode=mode) for raw in raw_lines]

    logos = LogoIndex.build(reference_items)
    basket = []
    for idx, raw in enumerate(raw_lines):
        line = normalize_line(raw, logos.default_logo_for(idx, raw), mode=mode)
        basket.append(apply_branding_rates(line, branding_rates))
    return basket


def compute_quote(
    payload: Any,
    reference_items: Optional[Sequence[Any]] = None,
    settings: Optional[QuoteSettings] = None,
    mode: QuoteMode = QuoteMode.BRANDED,
    branding_rates: Optional[Mapping[Any, Sequence[BrandingRate]]] = None,
    raw_lines: Optional[Sequence[Any]] = None,
) -> QuoteResult:
    """Main entry point: raw request payload in, priced quote out.

    `raw_lines` overrides the basket found in the payload's items/line_items.
    Never raises on malformed input; broken lines price at zero.
    """
    settings = settings or QuoteSettings()
    mode = QuoteMode(mode)
    body = unwrap_body(payload)

    if raw_lines is None:
        raw_lines = extract_basket(body)
    basket = normalize_basket(raw_lines, reference_items, mode, branding_rates)

    priced = [price_line(line, settings.margin_rate) for line in basket]
    totals = totalize(priced, settings, basket)

    logger.info(
        "Quote computed (%s): %d lines, subtotal=%s vat=%s grand_total=%s",
        mode.value, len(priced), totals.subtotal_ex_vat, totals.vat_total, totals.grand_total,
    )
    return QuoteResult(
        customer=normalize_customer(body),
        shipping_address=normalize_shipping_address(body),
        lines=priced,
        totals=totals,
        settings=settings,
        mode=mode,
    )
