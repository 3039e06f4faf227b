"""
Stock — Models

Stock locations ("stocks"), their optional grouping, and the ledger of
per-location product quantities (ProductStock). The ledger is the
source of truth; Product.total_stock is recomputed from it by
stock.services.TotalStockService inside every ledger transaction.

Write ProductStock rows through ProductStockService only: a direct
save() or delete() would bypass the total-stock recompute.

@file stock/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.exceptions import LedgerWriteError
from core.models import BaseModel


class StockGroup(BaseModel):
    """
    Named classification of stock locations. The synchronizable flag marks
    groups whose locations feed the external stock synchronisation.
    Deleting a group detaches its locations (group set to NULL).
    """

    name = models.CharField(_('name'), max_length=150, unique=True)
    synchronizable = models.BooleanField(
        _('synchronizable'), default=False, db_index=True,
        help_text=_('Locations of this group take part in external stock sync'),
    )

    class Meta:
        db_table = 'stock_groups'
        verbose_name = _('stock group')
        verbose_name_plural = _('stock groups')
        ordering = ['name']

    def __str__(self):
        return self.name


class Stock(BaseModel):
    """A physical or logical place holding product units."""

    name = models.CharField(_('name'), max_length=150, unique=True)
    group = models.ForeignKey(
        StockGroup,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='stocks',
        verbose_name=_('group'),
    )

    class Meta:
        db_table = 'stocks'
        verbose_name = _('stock location')
        verbose_name_plural = _('stock locations')
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_synchronizable(self) -> bool:
        return bool(self.group_id) and self.group.synchronizable


class ProductStock(BaseModel):
    """Units of one product held at one stock location."""

    product = models.ForeignKey(
        'products.Product',
        on_delete=models.CASCADE,
        related_name='stock_allocations',
        verbose_name=_('product'),
    )
    stock = models.ForeignKey(
        Stock,
        on_delete=models.CASCADE,
        related_name='allocations',
        verbose_name=_('stock location'),
    )
    quantity = models.PositiveIntegerField(_('quantity'), default=0)

    class Meta:
        db_table = 'product_stocks'
        verbose_name = _('product stock')
        verbose_name_plural = _('product stocks')
        ordering = ['stock__name']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'stock'],
                name='unique_product_stock_location',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='product_stock_quantity_non_negative',
            ),
        ]

    def __str__(self):
        return f'{self.product_id} @ {self.stock_id}: {self.quantity}'

    def delete(self, *args, **kwargs):
        raise LedgerWriteError(
            'ProductStock rows are removed through ProductStockService so the '
            'product total is recomputed.',
        )
