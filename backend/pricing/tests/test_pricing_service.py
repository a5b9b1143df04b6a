"""
Tests for the line pricer, basket totalizer and the compute_quote pipeline.

Unless stated otherwise: 25% margin, 15% VAT, delivery 99 below 1000 incl. VAT.
"""

import logging
from decimal import Decimal

import pytest

from ..dataclasses import BasketLine, BrandingCharge, BrandingRate, PricedLine, QuoteMode, QuoteSettings
from ..services.pricing_service import (
    bundle_cost,
    compute_quote,
    delivery_fee_for,
    pre_margin_cost,
    price_line,
    totalize,
)
from ..services.utils import round_currency

SETTINGS = QuoteSettings()


def make_line(price, available, requested, charges=(), **extra):
    return BasketLine(
        product_price_ex_vat=Decimal(str(price)),
        quantity_available=Decimal(str(available)),
        quantity_requested=Decimal(str(requested)),
        branding_charges=tuple(charges),
        extra=extra,
    )


def charge(unit, setup, **kwargs):
    return BrandingCharge(unit_price_ex_vat=Decimal(str(unit)), setup_fee_ex_vat=Decimal(str(setup)), **kwargs)


def priced(total):
    return PricedLine(
        line=BasketLine(),
        base_price_rounded=0,
        capped_quantity=Decimal("1"),
        is_out_of_stock=total == 0,
        line_total_ex_vat=total,
        unit_price_ex_vat=total,
    )


class TestPriceLine:
    def test_single_unbranded_line(self):
        result = price_line(make_line(100, 10, 3), Decimal("0.25"))
        assert result.capped_quantity == 3
        assert result.is_out_of_stock is False
        assert result.base_price_rounded == 100
        assert result.line_total_ex_vat == 400
        assert result.unit_price_ex_vat == 133

    def test_out_of_stock_line_is_zeroed(self):
        line = make_line(200, 0, 5, [charge(10, 80)])
        result = price_line(line, Decimal("0.25"))
        assert result.is_out_of_stock is True
        assert result.line_total_ex_vat == 0
        assert result.unit_price_ex_vat == 0
        assert result.base_price_rounded == 200

    @pytest.mark.parametrize("requested", [0, -2])
    def test_nothing_requested_is_out_of_stock(self, requested):
        result = price_line(make_line(20, 10, requested), Decimal("0.25"))
        assert result.is_out_of_stock is True
        assert result.line_total_ex_vat == 0

    def test_quantity_is_capped_to_stock(self):
        result = price_line(make_line(10, 5, 12), Decimal("0.25"))
        assert result.capped_quantity == 5
        # 50 * 4/3 = 66.67 -> 67; 67 / 5 = 13.4 -> 13
        assert result.line_total_ex_vat == 67
        assert result.unit_price_ex_vat == 13

    @pytest.mark.parametrize("available, requested", [(5, 12), (12, 5), (3, 3), (0, 4), (7, 0)])
    def test_capped_quantity_never_exceeds_inputs(self, available, requested):
        result = price_line(make_line(10, available, requested), Decimal("0.25"))
        assert result.capped_quantity <= available
        assert result.capped_quantity <= requested

    def test_branded_line_with_one_charge(self):
        line = make_line(50, 10, 4, [charge(10, 80)])
        assert bundle_cost(line, Decimal(4)) == 320
        result = price_line(line, Decimal("0.25"))
        assert result.line_total_ex_vat == 427
        assert result.unit_price_ex_vat == 107

    def test_branding_charges_are_summed(self):
        line = make_line(20, 100, 10, [charge(5, 100), charge("2.5", 50)])
        # 200 + 75 + 150 = 425 -> 566.67 -> 567
        result = price_line(line, Decimal("0.25"))
        assert result.line_total_ex_vat == 567
        assert result.unit_price_ex_vat == 57

    def test_zero_margin_prices_at_rounded_cost(self):
        line = make_line("33.333", 10, 3)
        result = price_line(line, 0)
        assert result.line_total_ex_vat == round_currency(bundle_cost(line, Decimal(3))) == 100

    @pytest.mark.parametrize("margin", [1, Decimal("1.5"), float("nan"), float("inf")])
    def test_unusable_margin_applies_no_markup(self, margin):
        result = price_line(make_line(100, 10, 3), margin)
        assert result.line_total_ex_vat == 300

    def test_unusable_margin_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pricing"):
            price_line(make_line(100, 10, 3), 1)
        assert "pricing without markup" in caplog.text

    def test_fractional_quantities_are_tolerated(self):
        result = price_line(make_line(10, "2.5", 3), Decimal("0.25"))
        assert result.capped_quantity == Decimal("2.5")
        assert result.line_total_ex_vat == 33
        assert result.unit_price_ex_vat == 13

    def test_unit_price_drift_is_preserved(self):
        result = price_line(make_line(1, 3, 3), Decimal("0.25"))
        assert result.line_total_ex_vat == 4
        assert result.unit_price_ex_vat == 1
        assert result.unit_price_ex_vat * result.capped_quantity != result.line_total_ex_vat


class TestTotalize:
    def test_single_line_below_free_delivery(self):
        totals = totalize([price_line(make_line(100, 10, 3), Decimal("0.25"))], SETTINGS)
        assert totals.items_subtotal_ex_vat == 400
        assert totals.delivery_fee_ex_vat == 99
        assert totals.subtotal_ex_vat == 499
        assert totals.vat_total == 75
        assert totals.grand_total == 574
        assert totals.pre_margin_basket_total == 300
        assert totals.has_chargeable_line is True

    def test_empty_basket(self):
        totals = totalize([], SETTINGS)
        assert totals.items_subtotal_ex_vat == 0
        assert totals.has_chargeable_line is False
        assert totals.delivery_fee_ex_vat == 0
        assert totals.vat_total == 0
        assert totals.grand_total == 0

    def test_all_lines_out_of_stock(self):
        lines = [price_line(make_line(200, 0, 5), Decimal("0.25")), price_line(make_line(80, 4, 0), Decimal("0.25"))]
        totals = totalize(lines, SETTINGS)
        assert totals.has_chargeable_line is False
        assert totals.delivery_fee_ex_vat == 0
        assert totals.grand_total == 0
        assert totals.pre_margin_basket_total == 0

    def test_free_delivery_exactly_at_threshold(self):
        settings = QuoteSettings(vat_rate=Decimal("0.25"))
        # 800 + 200 VAT == 1000
        assert totalize([priced(800)], settings).delivery_fee_ex_vat == 0
        # 799 + 200 VAT == 999
        assert totalize([priced(799)], settings).delivery_fee_ex_vat == 99

    def test_threshold_uses_items_including_vat(self):
        # 870 ex VAT is below 1000 but 870 + 131 VAT is not
        assert totalize([priced(870)], SETTINGS).delivery_fee_ex_vat == 0
        assert totalize([priced(869)], SETTINGS).delivery_fee_ex_vat == 99

    def test_vat_is_charged_once_on_items_and_delivery(self):
        for total in (1, 133, 400, 869, 870, 5000):
            totals = totalize([priced(total)], SETTINGS)
            assert totals.subtotal_ex_vat == totals.items_subtotal_ex_vat + totals.delivery_fee_ex_vat
            assert totals.grand_total - totals.subtotal_ex_vat == totals.vat_total
            assert totals.vat_total == round_currency(totals.subtotal_ex_vat * Decimal("0.15"))

    def test_delivery_fee_is_monotonic(self):
        fees = [totalize([priced(total)], SETTINGS).delivery_fee_ex_vat for total in range(1, 1500, 7)]
        first_free = fees.index(0)
        assert set(fees[:first_free]) == {99}
        assert set(fees[first_free:]) == {0}

    def test_custom_settings(self):
        settings = QuoteSettings(vat_rate=Decimal("0.1"), delivery_fee_flat=Decimal("150"), delivery_free_threshold=Decimal("500"))
        totals = totalize([priced(300)], settings)
        assert totals.delivery_fee_ex_vat == 150
        assert totals.vat_total == 45
        assert totals.grand_total == 495

    def test_delivery_fee_for_without_chargeable_lines(self):
        assert delivery_fee_for(0, False, SETTINGS) == 0
        assert delivery_fee_for(10, True, SETTINGS) == 99


class TestPreMarginCost:
    def test_skips_unchargeable_lines(self):
        basket = [
            make_line(100, 10, 3),
            make_line(200, 0, 5),
            make_line(50, 10, 4, [charge(10, 80)]),
        ]
        assert pre_margin_cost(basket) == 620

    def test_rounded_once_at_basket_level(self):
        basket = [make_line("0.4", 1, 1), make_line("0.4", 1, 1)]
        # 40c + 40c = 80c -> 1, not 0 + 0
        assert pre_margin_cost(basket) == 1


class TestComputeQuote:
    def payload(self):
        return {
            "customer": {"first_name": "Thandi", "last_name": "Mokoena", "email": "thandi@example.com"},
            "shipping_address": {"street": "12 Bree St", "city": "Cape Town", "postal_code": "8001"},
            "items": [
                {"description": "Travel Mug", "price": 100, "qty_available": 10, "requested_qty": 3},
                {"description": "Cap", "price": 200, "qty_available": 0, "quantity": 5},
                {
                    "description": "Golf Shirt",
                    "stock_header_id": "SH-9",
                    "unit_price": 50,
                    "qty_available": 10,
                    "qty": 4,
                    "branding": [{"brandingType": "Embroidery", "brandingSize": "Large", "unitPrice": 10, "setupFee": 80}],
                },
            ],
        }

    def test_branded_quote(self):
        result = compute_quote(self.payload())
        assert [p.line_total_ex_vat for p in result.lines] == [400, 0, 427]
        assert result.lines[1].is_out_of_stock is True
        # 827 + 124 VAT = 951 < 1000
        assert result.totals.delivery_fee_ex_vat == 99
        assert result.totals.subtotal_ex_vat == 926
        assert result.totals.vat_total == 139
        assert result.totals.grand_total == 1065
        assert result.totals.pre_margin_basket_total == 620
        assert result.customer["first_name"] == "Thandi"
        assert result.shipping_address["city"] == "Cape Town"

    def test_unbranded_quote_ignores_branding(self):
        result = compute_quote(self.payload(), mode=QuoteMode.UNBRANDED)
        assert [p.line_total_ex_vat for p in result.lines] == [400, 0, 267]
        assert result.lines[2].line.branding_charges == ()
        assert result.totals.subtotal_ex_vat == 766
        assert result.totals.vat_total == 115
        assert result.totals.grand_total == 881
        assert result.totals.pre_margin_basket_total == 500

    def test_mode_accepts_plain_strings(self):
        assert compute_quote(self.payload(), mode="unbranded").mode == QuoteMode.UNBRANDED

    def test_margin_comes_from_settings(self):
        result = compute_quote(self.payload(), settings=QuoteSettings(margin_rate=Decimal("0.2")))
        assert result.lines[0].line_total_ex_vat == 375
        assert result.markup_rate == Decimal("0.25")

    def test_basket_order_is_preserved(self):
        result = compute_quote(self.payload())
        assert [p.line.extra["description"] for p in result.lines] == ["Travel Mug", "Cap", "Golf Shirt"]

    def test_logos_come_from_reference_items(self):
        refs = [{}, {}, {"branding_items": [{"logoFile": "https://cdn/acme.png"}]}]
        result = compute_quote(self.payload(), reference_items=refs)
        assert result.lines[2].line.branding_charges[0].logo_file == "https://cdn/acme.png"

    def test_branding_rates_fill_in_prices(self):
        payload = self.payload()
        payload["items"][2]["branding"] = [{"brandingType": "embroidery ", "brandingSize": "LARGE"}]
        rates = {"SH-9": [BrandingRate("Embroidery", "Large", None, Decimal("10"), Decimal("80"))]}
        result = compute_quote(payload, branding_rates=rates)
        assert result.lines[2].line_total_ex_vat == 427

    def test_wrapped_webhook_payload_and_line_items(self):
        body = self.payload()
        body["line_items"] = body.pop("items")
        result = compute_quote([{"body": body}])
        assert [p.line_total_ex_vat for p in result.lines] == [400, 0, 427]

    def test_explicit_raw_lines_override_payload(self):
        result = compute_quote(self.payload(), raw_lines=[{"price": 100, "qty_available": 10, "qty": 3}])
        assert len(result.lines) == 1
        assert result.totals.grand_total == 574

    def test_malformed_payload_never_raises(self):
        result = compute_quote({"items": [None, "x", {"price": "abc", "qty": "lots"}, {"branding": "nope"}]})
        assert all(p.is_out_of_stock for p in result.lines)
        assert result.totals.grand_total == 0
        assert compute_quote(None).totals.grand_total == 0

    def test_out_of_range_numbers_price_as_zero(self):
        result = compute_quote({"items": [
            {"price": "1e999999", "qty_available": 10, "qty": 3},
            {"price": "1e400", "qty_available": 10, "qty": 3},
            {"price": 100, "qty_available": "1e400", "qty": 3},
        ]})
        assert [p.line_total_ex_vat for p in result.lines] == [0, 0, 0]
        assert result.totals.grand_total == 0
