import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from products.models import Product, StockBatch
from products.services.stock_intake import intake_batch


class Command(BaseCommand):
    help = "Seed demo products with two FIFO stock batches each"

    def add_arguments(self, parser):
        parser.add_argument(
            "--seed",
            type=int,
            default=None,
            help="Random seed for reproducible batch quantities.",
        )

    def handle(self, *args, **options):
        rng = random.Random(options.get("seed"))
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        # -------------------------------
        # PRODUCTS
        # -------------------------------
        products_data = [
            # sku, name, unit price, units per package, package type
            ("AMOX-500", "Amoxicillin 500mg", 1200, 10, Product.PackageType.BOX),
            ("PARA-500", "Paracetamol 500mg", 300, 12, Product.PackageType.BOX),
            ("VITA-C", "Vitamin C 1000mg", 800, 24, Product.PackageType.CASE),
            ("FLU-STOP", "Flu Stop Syrup", 1500, 6, Product.PackageType.CASE),
            ("ORS-SACH", "Oral Rehydration Salts", 150, 1, Product.PackageType.NONE),
        ]

        today = timezone.localdate()
        created_batches = 0

        for sku, name, price, per_package, package_type in products_data:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "unit_price": price,
                    "units_per_package": per_package,
                    "package_type": package_type,
                },
            )

            # -------------------------------
            # STOCK BATCHES (FIFO)
            # -------------------------------
            for i in range(2):
                batch_number = f"{sku}-B{i + 1}"
                if StockBatch.objects.filter(product=product, batch_number=batch_number).exists():
                    continue

                intake_batch(
                    product=product,
                    batch_number=batch_number,
                    quantity=rng.randint(20, 50),
                    expiry_date=today + timedelta(days=180 + i * 60),
                    received_date=today,
                    cost_price=price * 0.6,
                )
                created_batches += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Products and stock seeded ({created_batches} new batches)."
            )
        )
