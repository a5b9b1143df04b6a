"""
Input normalization for quote requests.

Upstream producers (storefront checkout, webhook payload assemblers) do not
agree on field names or types. Everything here coerces to the canonical
BasketLine / BrandingCharge shape and never raises: unparsable values degrade
to 0 or None so a partially broken payload still produces a quote.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..dataclasses import BasketLine, BrandingCharge, QuoteMode
from .utils import clean, first_string, to_num

logger = logging.getLogger(__name__)

PRICE_KEYS = ("price", "unit_price")
REQUESTED_QTY_KEYS = ("requested_qty", "quantity", "qty")
AVAILABLE_QTY_KEYS = ("qty_available",)

# Keys folded into the canonical fields and not passed through to the output
CONSUMED_KEYS = frozenset(
    PRICE_KEYS + REQUESTED_QTY_KEYS + AVAILABLE_QTY_KEYS + ("branding",)
)

BRANDING_ALIASES = {
    "branding_type": ("brandingType", "branding_type"),
    "branding_position": ("brandingPosition", "branding_position"),
    "branding_size": ("brandingSize", "branding_size"),
    "colour_count": ("colourCount", "colour_count", "colorCount"),
    "unit_price": ("unitPrice", "unit_price"),
    "setup_fee": ("setupFee", "setup_fee"),
    "logo_file": ("logoFile", "logo_file"),
}

# Nested customer keys match the output names; these are the top-level fallbacks
CUSTOMER_FLAT_KEYS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "company": "company",
    "email": "email",
    "phone": "telephoneNumber",
}

ADDRESS_ALIASES = {
    "street": ("street",),
    "suburb": ("suburb",),
    "city": ("city",),
    "province": ("province",),
    "postal_code": ("postal_code", "postalCode"),
    "country": ("country",),
}


def first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """Value of the first key that is present and not None, else None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def normalize_branding(raw: Any, default_logo: Optional[str] = None) -> BrandingCharge:
    raw = _as_mapping(raw)

    def pick(name: str) -> Any:
        return first_present(raw, BRANDING_ALIASES[name])

    own_logo = clean(first_string(pick("logo_file")))
    return BrandingCharge(
        branding_type=clean(pick("branding_type")),
        branding_position=clean(pick("branding_position")),
        branding_size=clean(pick("branding_size")),
        colour_count=to_num(pick("colour_count")),
        unit_price_ex_vat=to_num(pick("unit_price")),
        setup_fee_ex_vat=to_num(pick("setup_fee")),
        logo_file=own_logo or clean(default_logo),
    )


def normalize_line(
    raw: Any,
    default_logo: Optional[str] = None,
    mode: QuoteMode = QuoteMode.BRANDED,
) -> BasketLine:
    if not isinstance(raw, Mapping):
        logger.debug("Basket line is not an object (%s); pricing it as empty", type(raw).__name__)
        raw = {}

    branding_raw = raw.get("branding")
    if mode == QuoteMode.BRANDED and isinstance(branding_raw, (list, tuple)):
        charges = tuple(normalize_branding(b, default_logo) for b in branding_raw)
    else:
        charges = ()

    return BasketLine(
        product_price_ex_vat=to_num(first_present(raw, PRICE_KEYS)),
        quantity_available=to_num(first_present(raw, AVAILABLE_QTY_KEYS)),
        quantity_requested=to_num(first_present(raw, REQUESTED_QTY_KEYS)),
        branding_charges=charges,
        extra={k: v for k, v in raw.items() if k not in CONSUMED_KEYS},
    )


def _clean_record(source: Mapping[str, Any], aliases: Dict[str, Sequence[str]]) -> Dict[str, Any]:
    return {name: clean(first_present(source, keys)) for name, keys in aliases.items()}


def normalize_customer(body: Any) -> Dict[str, Any]:
    """Customer fields from body["customer"], falling back to top-level camelCase fields."""
    body = _as_mapping(body)
    nested = _as_mapping(body.get("customer"))
    customer = {}
    for name, flat_key in CUSTOMER_FLAT_KEYS.items():
        value = nested.get(name)
        if value is None:
            value = body.get(flat_key)
        customer[name] = clean(value)
    return customer


def normalize_shipping_address(body: Any) -> Dict[str, Any]:
    body = _as_mapping(body)
    address = first_present(body, ("shipping_address", "address"))
    return _clean_record(_as_mapping(address), ADDRESS_ALIASES)


def unwrap_body(payload: Any) -> Mapping[str, Any]:
    """Webhook payloads arrive as [{...}], {"body": {...}} or the body itself."""
    if isinstance(payload, (list, tuple)):
        payload = payload[0] if payload else {}
    payload = _as_mapping(payload)
    inner = payload.get("body")
    if isinstance(inner, Mapping):
        return inner
    return payload


def extract_basket(body: Any) -> List[Any]:
    """Raw basket lines from body["items"], else body["line_items"], else []."""
    body = _as_mapping(body)
    for key in ("items", "line_items"):
        value = body.get(key)
        if isinstance(value, (list, tuple)):
            return list(value)
    return []
