"""
Products — Models

The product record as the stock subsystem sees it. total_stock is a
denormalised cache of SUM(ProductStock.quantity) and has exactly one
writer: stock.services.TotalStockService.recompute. Every other write
path (save(), QuerySet.update(), bulk_create(), bulk_update(), admin,
serializers) refuses it.

@file products/models.py
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.exceptions import TotalStockWriteError
from core.models import BaseModel

TOTAL_STOCK_FIELD = 'total_stock'


class ProductQuerySet(models.QuerySet):

    def update(self, **kwargs):
        if TOTAL_STOCK_FIELD in kwargs:
            raise TotalStockWriteError(
                'Product.total_stock is derived from the stock ledger; '
                'use TotalStockService.recompute().',
            )
        return super().update(**kwargs)

    def bulk_create(self, objs, *args, **kwargs):
        objs = list(objs)
        # A new product has no allocations yet.
        for obj in objs:
            obj.total_stock = 0
        update_fields = kwargs.get('update_fields') or ()
        if TOTAL_STOCK_FIELD in update_fields:
            raise TotalStockWriteError(
                'Product.total_stock cannot be written by bulk_create(); '
                'use TotalStockService.recompute().',
            )
        return super().bulk_create(objs, *args, **kwargs)

    def bulk_update(self, objs, fields, *args, **kwargs):
        if TOTAL_STOCK_FIELD in fields:
            raise TotalStockWriteError(
                'Product.total_stock cannot be written by bulk_update(); '
                'use TotalStockService.recompute().',
            )
        return super().bulk_update(objs, fields, *args, **kwargs)

    def _write_total_stock(self, value: int) -> int:
        # Reserved for TotalStockService.recompute.
        return super().update(**{TOTAL_STOCK_FIELD: value, 'updated_at': timezone.now()})


class Product(BaseModel):
    """A sellable product whose units are spread across stock locations."""

    name = models.CharField(_('name'), max_length=255)
    sku = models.CharField(
        _('SKU'), max_length=64, unique=True,
        help_text=_('Stock keeping unit, unique per product'),
    )
    total_stock = models.IntegerField(
        _('total stock'), default=0, editable=False,
        help_text=_('Sum of quantities over all stock locations (read-only)'),
    )

    objects = ProductQuerySet.as_manager()

    class Meta:
        db_table = 'products'
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='product_name_idx'),
        ]

    def __str__(self):
        return f'{self.name} ({self.sku})'

    @property
    def stock_total(self) -> int:
        """Legacy name of total_stock."""
        return self.total_stock

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.total_stock = 0
        else:
            update_fields = kwargs.get('update_fields')
            if update_fields is None:
                kwargs['update_fields'] = [
                    f.name for f in self._meta.concrete_fields
                    if not f.primary_key and f.name != TOTAL_STOCK_FIELD
                ]
            elif TOTAL_STOCK_FIELD in update_fields:
                raise TotalStockWriteError(
                    'Product.total_stock cannot be saved directly; '
                    'use TotalStockService.recompute().',
                )
        super().save(*args, **kwargs)
