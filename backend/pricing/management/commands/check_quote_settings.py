from django.core.management.base import BaseCommand, CommandError

from pricing.services.config import ConfigurationError, load_quote_settings, validate_quote_settings


class Command(BaseCommand):
    help = "Validates the QUOTE_PRICING settings the pricing engine will run with."

    def handle(self, *args, **kwargs):
        try:
            settings = load_quote_settings()
        except ConfigurationError as e:
            raise CommandError(str(e))

        self.stdout.write(f"margin_rate={settings.margin_rate} (markup {settings.markup_rate:.4f})")
        self.stdout.write(f"vat_rate={settings.vat_rate}")
        self.stdout.write(
            f"delivery_fee_flat={settings.delivery_fee_flat} free from {settings.delivery_free_threshold} incl. VAT"
        )

        errors = validate_quote_settings(settings)
        self.stdout.write("-" * 20)
        if errors:
            for error in errors:
                self.stdout.write(self.style.WARNING(f"  - {error}"))
            self.stdout.write(self.style.ERROR(f"\nFound {len(errors)} problem(s) in QUOTE_PRICING."))
        else:
            self.stdout.write(self.style.SUCCESS("\nQuote settings look good."))
