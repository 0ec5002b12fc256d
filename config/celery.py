"""
ClinicStock — Celery Application

Workers and beat share the Django settings (CELERY_* namespace). Periodic
tasks are stored by django-celery-beat; the defaults below are synced
into its database on startup.

@file config/celery.py
"""

import os

from celery import Celery
from celery.schedules import crontab
from django.conf import settings

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('clinicstock')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


@app.on_after_finalize.connect
def setup_periodic_tasks(sender, **kwargs):
    sender.conf.beat_schedule = {
        'report-low-stock': {
            'task': 'inventory.report_low_stock',
            'schedule': crontab(hour=settings.LOW_STOCK_REPORT_HOUR, minute=0),
        },
    }
