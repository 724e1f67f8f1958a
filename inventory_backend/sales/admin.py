# sales/admin.py

from django.contrib import admin

from sales.models import Dealer, Sale, SaleItem


# ======================================================
# SALE ADMIN
# ======================================================


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "quantity",
        "unit_price",
        "subtotal",
        "total",
        "package_qty",
        "package_type",
        "created_at",
    )


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_no",
        "customer_type",
        "dealer",
        "total_amount",
        "payment_status",
        "process_status",
        "created_at",
    )
    readonly_fields = (
        "invoice_no",
        "user",
        "dealer",
        "customer_type",
        "channel",
        "subtotal_amount",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "payment_method",
        "created_at",
        "updated_at",
    )
    search_fields = ("invoice_no", "dealer__name")
    list_filter = ("customer_type", "process_status", "payment_status", "created_at")
    inlines = [SaleItemInline]


# ======================================================
# DEALER ADMIN
# ======================================================


@admin.register(Dealer)
class DealerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "is_active")
    search_fields = ("name", "phone", "email")
    list_filter = ("is_active",)
