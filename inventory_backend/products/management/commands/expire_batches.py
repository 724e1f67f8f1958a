# products/management/commands/expire_batches.py

from __future__ import annotations

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from products.services.expiry import expired_batches, mark_expired


class Command(BaseCommand):
    help = "Mark ACTIVE batches past their expiry date as EXPIRED so FIFO allocation skips them."

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            dest="as_of",
            default=None,
            help="Reference date (YYYY-MM-DD). Defaults to today.",
        )

    def handle(self, *args, **options):
        as_of = None
        raw = options.get("as_of")
        if raw:
            try:
                as_of = date.fromisoformat(raw)
            except ValueError as exc:
                raise CommandError(f"Invalid --as-of date: {raw}") from exc

        updated = mark_expired(as_of)
        pending = expired_batches(as_of).count()

        self.stdout.write(
            self.style.SUCCESS(
                f"Marked {updated} batch(es) expired. {pending} expired batch(es) awaiting disposal."
            )
        )
