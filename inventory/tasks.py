"""
Inventory — Celery Tasks

Periodic stock reporting.

@file inventory/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('clinicstock')


@shared_task(name='inventory.report_low_stock')
def report_low_stock_task():
    """
    Daily task: log every pharmacy line at or below its minimum level.
    Registered with Celery Beat at LOW_STOCK_REPORT_HOUR.
    """
    from .services import InventoryService

    medicines = []
    for record in InventoryService.low_stock():
        logger.warning(
            'Low stock: %s quantity=%d min_stock_level=%s',
            record.medicine_name, record.quantity, record.min_stock_level,
        )
        medicines.append(record.medicine_name)
    logger.info('report_low_stock_task completed: %d low-stock lines.', len(medicines))
    return {'low_stock_count': len(medicines), 'medicines': medicines}
