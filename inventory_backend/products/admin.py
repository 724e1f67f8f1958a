# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:
- Products are edited here.
- Batches, ledger counters, movements and disposals are read-only:
  they change only through the stock services (intake, settlement,
  issue, disposal) so the ledger and the audit trail stay in step.
"""

from django.contrib import admin

from products.models import ExpiredDisposal, Product, StockBatch, StockLedger, StockMovement


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StockBatchInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = StockBatch
    extra = 0
    fields = (
        "batch_number",
        "expiry_date",
        "quantity",
        "quantity_remaining",
        "status",
    )
    readonly_fields = fields
    ordering = ("expiry_date", "id")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "unit_price", "units_per_package", "package_type", "is_active")
    search_fields = ("name", "sku")
    list_filter = ("is_active", "package_type")
    inlines = [StockBatchInline]


@admin.register(StockBatch)
class StockBatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("product", "batch_number", "expiry_date", "quantity", "quantity_remaining", "status")
    search_fields = ("batch_number", "product__name", "product__sku")
    list_filter = ("status", "expiry_date")


@admin.register(StockLedger)
class StockLedgerAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("product", "current_quantity", "package_qty", "threshold_quantity", "max_stock_level")
    search_fields = ("product__name", "product__sku")


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("created_at", "product", "batch", "movement_type", "quantity", "cost_loss", "sale")
    list_filter = ("movement_type",)
    search_fields = ("product__name", "batch__batch_number")


@admin.register(ExpiredDisposal)
class ExpiredDisposalAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("disposal_date", "product", "batch_number", "quantity_disposed", "disposal_method", "cost_loss")
    list_filter = ("disposal_method",)
