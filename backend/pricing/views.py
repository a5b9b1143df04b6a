from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .api.serializers import QuoteRequestSerializer, QuoteResultSerializer, QuoteSettingsSerializer
from .dataclasses import QuoteMode
from .services.branding_rates import rates_from_table
from .services.config import ConfigurationError, load_quote_settings, validate_quote_settings
from .services.pricing_service import compute_quote

logger = logging.getLogger(__name__)


class PriceQuoteView(APIView):
    def post(self, request, *args, **kwargs):
        ser = QuoteRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            settings = load_quote_settings()
        except ConfigurationError as e:
            logger.error(f"Quote pricing is misconfigured: {e}")
            return Response({"detail": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        # neither key at the top level: compute_quote looks inside a wrapped body
        raw_lines = data.get("items")
        if raw_lines is None:
            raw_lines = data.get("line_items")

        result = compute_quote(
            request.data,
            reference_items=data.get("reference_items", []),
            settings=settings,
            mode=QuoteMode(data["mode"]),
            branding_rates=rates_from_table(data.get("branding_rates")),
            raw_lines=raw_lines,
        )
        return Response(QuoteResultSerializer(result).data, status=status.HTTP_200_OK)


class QuoteSettingsView(APIView):
    def get(self, request, *args, **kwargs):
        try:
            settings = load_quote_settings()
        except ConfigurationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        payload = QuoteSettingsSerializer(settings).data
        payload["errors"] = validate_quote_settings(settings)
        return Response(payload, status=status.HTTP_200_OK)
