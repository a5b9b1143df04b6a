from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..dataclasses import BasketLine, BrandingCharge, BrandingRate
from .normalizer import first_present
from .utils import to_num

logger = logging.getLogger(__name__)

STOCK_HEADER_KEYS = ("stock_header_id", "stockHeaderId")


def _norm(value: Optional[str]) -> str:
    return str(value if value is not None else "").strip().lower()


def rate_from_row(row: Mapping[str, Any]) -> BrandingRate:
    """Build a BrandingRate from a supplier price-table row (camelCase or snake_case)."""
    return BrandingRate(
        branding_type=first_present(row, ("brandingType", "branding_type")) or "",
        branding_size=first_present(row, ("brandingSize", "branding_size")) or "",
        branding_position=first_present(row, ("brandingPosition", "branding_position")),
        unit_price=to_num(first_present(row, ("unitPrice", "unit_price"))),
        setup_fee=to_num(first_present(row, ("setupFee", "setup_fee"))),
    )


def rates_from_table(table: Optional[Mapping[Any, Any]]) -> Dict[Any, List[BrandingRate]]:
    """
    Parse a supplier price table keyed by stock header id, e.g.
    {"1001": [{"brandingType": "Embroidery", "brandingSize": "Large", ...}]}.
    Rows that are not objects are skipped.
    """
    if not isinstance(table, Mapping):
        return {}
    rates = {}
    for header_id, rows in table.items():
        if not isinstance(rows, (list, tuple)):
            logger.debug("Branding rates for stock header %s are not a list; skipping", header_id)
            continue
        rates[header_id] = [rate_from_row(row) for row in rows if isinstance(row, Mapping)]
    return rates


def find_branding_rate(charge: BrandingCharge, rates: Iterable[BrandingRate]) -> Optional[BrandingRate]:
    """
    First rate whose type and size match the charge. Position only has to
    match when the charge names one.
    """
    for rate in rates:
        if _norm(rate.branding_type) != _norm(charge.branding_type):
            continue
        if _norm(rate.branding_size) != _norm(charge.branding_size):
            continue
        if charge.branding_position and _norm(rate.branding_position) != _norm(charge.branding_position):
            continue
        return rate
    return None


def apply_branding_rates(
    line: BasketLine,
    rates_by_stock_header: Optional[Mapping[Any, Sequence[BrandingRate]]],
) -> BasketLine:
    """
    Return a copy of `line` whose branding charges carry the supplier table's
    unit/setup prices. Unmatched charges keep the prices they arrived with.
    """
    if not rates_by_stock_header or not line.branding_charges:
        return line

    header_id = first_present(line.extra, STOCK_HEADER_KEYS)
    rates = rates_by_stock_header.get(header_id)
    if rates is None and header_id is not None:
        rates = rates_by_stock_header.get(str(header_id))
    if not rates:
        return line

    charges = []
    for charge in line.branding_charges:
        rate = find_branding_rate(charge, rates)
        if rate is None:
            logger.debug(
                "No branding rate for stock header %s (%s / %s / %s)",
                header_id, charge.branding_type, charge.branding_size, charge.branding_position,
            )
            charges.append(charge)
            continue
        charges.append(replace(charge, unit_price_ex_vat=rate.unit_price, setup_fee_ex_vat=rate.setup_fee))
    return replace(line, branding_charges=tuple(charges))
