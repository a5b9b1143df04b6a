from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from pricing.dataclasses import QuoteMode


class NumberField(serializers.Field):
    """Read-only number: integral Decimals render as int, the rest as float."""

    def __init__(self, **kwargs):
        kwargs.setdefault("read_only", True)
        super().__init__(**kwargs)

    def to_representation(self, value):
        if isinstance(value, Decimal):
            if value == value.to_integral_value():
                return int(value)
            return float(value)
        return value


# ---------- REQUEST ----------
class QuoteRequestSerializer(serializers.Serializer):
    """
    Transport shape only. Basket lines and reference items are never rejected
    one by one: nulls and non-objects reach the engine, which prices them at
    zero.
    """
    mode = serializers.ChoiceField(
        choices=[m.value for m in QuoteMode], default=QuoteMode.BRANDED.value
    )
    items = serializers.ListField(child=serializers.JSONField(allow_null=True), required=False, allow_empty=True)
    line_items = serializers.ListField(child=serializers.JSONField(allow_null=True), required=False, allow_empty=True)
    reference_items = serializers.ListField(
        child=serializers.JSONField(allow_null=True), required=False, allow_empty=True, default=list
    )
    # supplier branding price rows keyed by stock header id
    branding_rates = serializers.DictField(required=False, default=dict)


# ---------- RESPONSE ----------
class BrandingChargeSerializer(serializers.Serializer):
    brandingType = serializers.CharField(source="branding_type")
    brandingPosition = serializers.CharField(source="branding_position")
    brandingSize = serializers.CharField(source="branding_size")
    colourCount = NumberField(source="colour_count")
    unitPrice = NumberField(source="unit_price_ex_vat")
    setupFee = NumberField(source="setup_fee_ex_vat")
    logoFile = serializers.CharField(source="logo_file")


class PricedLineSerializer(serializers.Serializer):
    requested_qty = NumberField(source="capped_quantity")
    qty_available = NumberField(source="line.quantity_available")
    base_price = serializers.IntegerField(source="base_price_rounded")
    price = serializers.IntegerField(source="unit_price_ex_vat")
    beforeVAT = serializers.IntegerField(source="line_total_ex_vat")
    vat = serializers.SerializerMethodField()
    line_total = serializers.IntegerField(source="line_total_ex_vat")
    out_of_stock = serializers.BooleanField(source="is_out_of_stock")
    branding = BrandingChargeSerializer(source="line.branding_charges", many=True)

    def get_vat(self, obj):
        # VAT is charged at totals level only
        return 0

    def to_representation(self, instance):
        data = dict(instance.line.extra)
        data.update(super().to_representation(instance))
        return data


class QuoteTotalsSerializer(serializers.Serializer):
    subtotal = serializers.IntegerField(source="subtotal_ex_vat")
    vat = serializers.IntegerField(source="vat_total")
    grand_total = serializers.IntegerField()
    base_subtotal = serializers.IntegerField(source="pre_margin_basket_total")
    items_subtotal = serializers.IntegerField(source="items_subtotal_ex_vat")


class QuoteResultSerializer(serializers.Serializer):
    mode = serializers.SerializerMethodField()
    customer = serializers.DictField()
    shipping_address = serializers.DictField()
    items = PricedLineSerializer(source="lines", many=True)
    margin_rate = serializers.FloatField()
    markup_rate = serializers.FloatField()
    delivery_fee = serializers.IntegerField()
    totals = QuoteTotalsSerializer()

    def get_mode(self, obj):
        return obj.mode.value


class QuoteSettingsSerializer(serializers.Serializer):
    margin_rate = serializers.FloatField()
    markup_rate = serializers.FloatField()
    vat_rate = serializers.FloatField()
    delivery_fee_flat = NumberField()
    delivery_free_threshold = NumberField()
