"""
Core — Constants

Audit action names, pagination limits, and the table names shared by the
stock and purchase ledgers.

@file core/constants.py
"""

# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_DELETE = 'DELETE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 200


# ---------------------------------------------------------------------------
# Record store tables
# ---------------------------------------------------------------------------

MASTER_INVENTORY_TABLE = 'master_inventory'
PHARMACY_INVENTORY_TABLE = 'pharmacy_inventory'
TRANSFERS_TABLE = 'transfers'
PURCHASES_TABLE = 'purchases'
PURCHASE_ITEMS_TABLE = 'purchase_items'

INVENTORY_TABLES = (MASTER_INVENTORY_TABLE, PHARMACY_INVENTORY_TABLE)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

# Category given to master rows created by a purchase commit. Purchase items
# carry no category of their own.
DEFAULT_PURCHASE_CATEGORY = 'TDSR'

INVENTORY_MASTER = 'master'
INVENTORY_PHARMACY = 'pharmacy'
