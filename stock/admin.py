"""
Stock — Django Admin Configuration

Admin writes are routed through stock.services so that deleting a
location or editing a quantity recomputes product totals exactly like
the API does.

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import ProductStock, Stock, StockGroup
from .services import ProductStockService, StockGroupService, StockLocationService


class StockInline(admin.TabularInline):
    model = Stock
    fk_name = 'group'
    extra = 0
    fields = ('name', 'created_at')
    readonly_fields = ('name', 'created_at')
    show_change_link = True
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockGroup)
class StockGroupAdmin(admin.ModelAdmin):
    list_display = ('name', 'synchronizable', 'stocks_count', 'updated_at')
    list_filter = ('synchronizable',)
    search_fields = ('name',)
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    inlines = [StockInline]
    ordering = ('name',)

    @admin.display(description=_('Locations'))
    def stocks_count(self, obj):
        return obj.stocks.count()

    def save_model(self, request, obj, form, change):
        if not change:
            group = StockGroupService.create_group(
                name=obj.name, synchronizable=obj.synchronizable, actor=request.user,
            )
            obj.pk = group.pk
            obj._state.adding = False
            return
        if 'name' in form.changed_data:
            StockGroupService.rename_group(group_id=obj.pk, name=obj.name, actor=request.user)
        if 'synchronizable' in form.changed_data:
            StockGroupService.set_synchronizable(
                group_id=obj.pk, synchronizable=obj.synchronizable, actor=request.user,
            )

    def delete_model(self, request, obj):
        StockGroupService.delete_group(group_id=obj.pk, actor=request.user)

    def delete_queryset(self, request, queryset):
        for group_id in queryset.values_list('pk', flat=True):
            StockGroupService.delete_group(group_id=group_id, actor=request.user)


@admin.register(Stock)
class StockAdmin(admin.ModelAdmin):
    list_display = ('name', 'group', 'synchronizable', 'allocations_count', 'updated_at')
    list_filter = ('group', 'group__synchronizable')
    search_fields = ('name', 'group__name')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_select_related = ('group',)
    ordering = ('name',)

    @admin.display(description=_('Synchronizable'), boolean=True)
    def synchronizable(self, obj):
        return obj.is_synchronizable

    @admin.display(description=_('Products'))
    def allocations_count(self, obj):
        return obj.allocations.count()

    def save_model(self, request, obj, form, change):
        if not change:
            location = StockLocationService.create_location(
                name=obj.name, group_id=obj.group_id, actor=request.user,
            )
            obj.pk = location.pk
            obj._state.adding = False
            return
        if 'name' in form.changed_data:
            StockLocationService.rename_location(stock_id=obj.pk, name=obj.name, actor=request.user)
        if 'group' in form.changed_data:
            StockLocationService.assign_group(stock_id=obj.pk, group_id=obj.group_id, actor=request.user)

    def delete_model(self, request, obj):
        StockLocationService.delete_location(stock_id=obj.pk, actor=request.user)

    def delete_queryset(self, request, queryset):
        for stock_id in queryset.values_list('pk', flat=True):
            StockLocationService.delete_location(stock_id=stock_id, actor=request.user)


@admin.register(ProductStock)
class ProductStockAdmin(admin.ModelAdmin):
    list_display = ('product', 'stock', 'quantity', 'updated_at')
    list_filter = ('stock', 'stock__group')
    search_fields = ('product__name', 'product__sku', 'stock__name')
    list_select_related = ('product', 'stock')
    autocomplete_fields = ('product',)
    ordering = ('product__name', 'stock__name')

    def get_readonly_fields(self, request, obj=None):
        base = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
        if obj is not None:
            return ('product', 'stock') + base
        return base

    def save_model(self, request, obj, form, change):
        allocation, _created = ProductStockService.upsert(
            product_id=obj.product_id,
            stock_id=obj.stock_id,
            quantity=obj.quantity,
            actor=request.user,
        )
        obj.pk = allocation.pk
        obj._state.adding = False

    def delete_model(self, request, obj):
        ProductStockService.delete(
            product_id=obj.product_id, stock_id=obj.stock_id, actor=request.user,
        )

    def delete_queryset(self, request, queryset):
        for row in queryset.values('product_id', 'stock_id'):
            ProductStockService.delete(actor=request.user, **row)
