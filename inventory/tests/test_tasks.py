"""
Tests — report_low_stock_task.

@file inventory/tests/test_tasks.py
"""

import pytest

from inventory.tasks import report_low_stock_task
from tests.factories import PharmacyInventoryFactory


pytestmark = pytest.mark.django_db


class TestReportLowStock:

    def test_reports_low_lines(self):
        PharmacyInventoryFactory(medicine_name='Zinc', quantity=1, min_stock_level=5)
        PharmacyInventoryFactory(medicine_name='Iron', quantity=50, min_stock_level=5)
        result = report_low_stock_task()
        assert result == {'low_stock_count': 1, 'medicines': ['Zinc']}

    def test_nothing_low(self):
        PharmacyInventoryFactory(quantity=50, min_stock_level=5)
        assert report_low_stock_task.delay().get() == {'low_stock_count': 0, 'medicines': []}
