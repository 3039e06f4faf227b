"""
Stock — Celery Tasks

@file stock/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('multistock')


@shared_task(name='stock.reconcile_total_stock')
def reconcile_total_stock_task():
    """
    Recompute every product's total_stock from the ledger. Schedule it with
    Celery Beat to repair totals written before this service owned them.
    """
    from .services import TotalStockService

    corrected = TotalStockService.reconcile_all()
    logger.info('reconcile_total_stock_task completed: %d product(s) corrected.', corrected)
    return {'corrected_count': corrected}
