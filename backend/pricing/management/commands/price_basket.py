import json

from django.core.management.base import BaseCommand, CommandError

from pricing.api.serializers import QuoteResultSerializer
from pricing.dataclasses import QuoteMode
from pricing.services.branding_rates import rates_from_table
from pricing.services.config import ConfigurationError, load_quote_settings
from pricing.services.pricing_service import compute_quote


def _read_json(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise CommandError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise CommandError(f"Invalid JSON in {path}: {e}")


class Command(BaseCommand):
    help = "Prices a basket payload (JSON file) and prints the quote as JSON."

    def add_arguments(self, parser):
        parser.add_argument("payload", help="Path to the request payload (items / line_items, customer, address).")
        parser.add_argument(
            "--mode",
            choices=[m.value for m in QuoteMode],
            default=QuoteMode.BRANDED.value,
        )
        parser.add_argument("--reference", help="Path to a JSON list of reference items used for logo lookup.")
        parser.add_argument(
            "--rates",
            help="Path to a JSON object of supplier branding price rows keyed by stock header id.",
        )

    def handle(self, *args, **options):
        payload = _read_json(options["payload"])
        reference_items = _read_json(options["reference"]) if options.get("reference") else []
        if not isinstance(reference_items, list):
            raise CommandError("Reference items file must contain a JSON list.")
        rates = _read_json(options["rates"]) if options.get("rates") else {}
        if not isinstance(rates, dict):
            raise CommandError("Branding rates file must contain a JSON object.")

        try:
            settings = load_quote_settings()
        except ConfigurationError as e:
            raise CommandError(str(e))

        result = compute_quote(
            payload,
            reference_items=reference_items,
            settings=settings,
            mode=QuoteMode(options["mode"]),
            branding_rates=rates_from_table(rates),
        )
        self.stdout.write(json.dumps(QuoteResultSerializer(result).data, indent=2))
