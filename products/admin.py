"""
Products — Django Admin Configuration

total_stock is displayed, never editable, and saves go through
ProductService. The per-location breakdown is read-only here;
quantities are edited from the product stock admin.

@file products/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stock.models import ProductStock
from stock.services import TotalStockService

from .models import Product
from .services import ProductService


class ProductStockInline(admin.TabularInline):
    model = ProductStock
    fk_name = 'product'
    extra = 0
    fields = ('stock', 'quantity', 'updated_at')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'sku', 'total_stock', 'updated_at')
    search_fields = ('name', 'sku')
    readonly_fields = ('id', 'total_stock', 'created_at', 'updated_at', 'created_by', 'updated_by')
    inlines = [ProductStockInline]
    actions = ['recompute_total_stock']
    ordering = ('name',)

    def save_model(self, request, obj, form, change):
        if change:
            fields = {name: form.cleaned_data[name] for name in form.changed_data}
            ProductService.update_product(product_id=obj.pk, actor=request.user, **fields)
            return
        product = ProductService.create_product(name=obj.name, sku=obj.sku, actor=request.user)
        obj.pk = product.pk
        obj._state.adding = False

    def delete_model(self, request, obj):
        ProductService.delete_product(product_id=obj.pk, actor=request.user)

    def delete_queryset(self, request, queryset):
        for product_id in queryset.values_list('pk', flat=True):
            ProductService.delete_product(product_id=product_id, actor=request.user)

    @admin.action(description=_('Recompute total stock'))
    def recompute_total_stock(self, request, queryset):
        totals = TotalStockService.recompute_many(queryset.values_list('pk', flat=True))
        self.message_user(request, _('%d product total(s) recomputed.') % len(totals))
