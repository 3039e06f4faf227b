"""
Multistock — Celery Application

Maintenance jobs only (total-stock reconciliation). The ledger write
path never depends on a worker.

@file config/celery.py
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('multistock')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
