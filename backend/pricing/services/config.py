"""
Quote pricing configuration

Margin, VAT and delivery settings are injected into the engine rather than
hardcoded. They are read from the QUOTE_PRICING dict in Django settings,
which in turn takes its values from the environment.

A margin given as a percentage (MARGIN_PERCENT, 0-100, the form the shop
margin setting is stored in) wins over MARGIN_RATE.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from ..dataclasses import QuoteSettings
from .utils import HUNDRED, ONE, ZERO, d

logger = logging.getLogger(__name__)

DEFAULTS = QuoteSettings()

SETTING_FIELDS = {
    "MARGIN_RATE": "margin_rate",
    "VAT_RATE": "vat_rate",
    "DELIVERY_FEE_FLAT": "delivery_fee_flat",
    "DELIVERY_FREE_THRESHOLD": "delivery_free_threshold",
}


class PricingError(Exception):
    """Base exception for pricing configuration errors"""
    pass


class ConfigurationError(PricingError):
    """Raised when the pricing configuration cannot be read at all"""
    pass


def _parse_decimal(name: str, raw: Any, default: Decimal) -> Decimal:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = d(raw.strip() if isinstance(raw, str) else raw)
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Invalid value for QUOTE_PRICING[{name!r}]: {raw!r}; using default {default}")
        return default
    if not value.is_finite():
        logger.warning(f"Non-finite value for QUOTE_PRICING[{name!r}]: {raw!r}; using default {default}")
        return default
    return value


def _django_config() -> Mapping:
    from django.conf import settings

    return getattr(settings, "QUOTE_PRICING", {}) or {}


def load_quote_settings(config: Optional[Mapping] = None) -> QuoteSettings:
    """
    Build QuoteSettings from a QUOTE_PRICING-style mapping

    Args:
        config: Mapping of QUOTE_PRICING keys. If None, read from Django settings.

    Returns:
        QuoteSettings: unparsable entries fall back to the defaults (25% / 15% / 99 / 1000)

    Raises:
        ConfigurationError: If the configuration is not a mapping
    """
    if config is None:
        config = _django_config()
    if not isinstance(config, Mapping):
        raise ConfigurationError(f"QUOTE_PRICING must be a mapping, got {type(config).__name__}")

    values = {
        attr: _parse_decimal(key, config.get(key), getattr(DEFAULTS, attr))
        for key, attr in SETTING_FIELDS.items()
    }

    percent = config.get("MARGIN_PERCENT")
    if percent is not None and not (isinstance(percent, str) and not percent.strip()):
        values["margin_rate"] = _parse_decimal("MARGIN_PERCENT", percent, DEFAULTS.margin_rate * HUNDRED) / HUNDRED

    return QuoteSettings(**values)


def validate_quote_settings(settings: QuoteSettings) -> List[str]:
    """
    Check settings for values the engine would silently work around

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    margin = settings.margin_rate
    if not d(margin).is_finite():
        errors.append(f"margin_rate must be a finite number, got {margin}")
    elif d(margin) >= ONE:
        errors.append(f"margin_rate must be below 1 (got {margin}); no markup would be applied")
    elif d(margin) < ZERO:
        errors.append(f"margin_rate must not be negative, got {margin}")

    if d(settings.vat_rate) < ZERO:
        errors.append(f"vat_rate must not be negative, got {settings.vat_rate}")
    if d(settings.delivery_fee_flat) < ZERO:
        errors.append(f"delivery_fee_flat must not be negative, got {settings.delivery_fee_flat}")
    if d(settings.delivery_free_threshold) < ZERO:
        errors.append(f"delivery_free_threshold must not be negative, got {settings.delivery_free_threshold}")

    if errors:
        logger.warning(f"Quote settings validation found {len(errors)} errors")
    return errors
