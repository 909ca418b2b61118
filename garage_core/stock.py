# garage_core/stock.py
"""Stock status rules shared by inventory items and parts."""

STOCK_DERIVED = ('out-of-stock', 'low-stock')


def derive_stock_status(quantity, min_stock_level=None, status=None):
    """Status a stock record should carry for the given quantity.

    Zero stock is always ``out-of-stock``. With a minimum level set, anything
    at or below it is ``low-stock``. Above that the submitted status is kept,
    except that a missing status or one that was itself derived from stock
    falls back to ``active``.
    """
    quantity = quantity or 0
    if quantity == 0:
        return 'out-of-stock'
    if min_stock_level and quantity <= min_stock_level:
        return 'low-stock'
    if not status or status in STOCK_DERIVED:
        return 'active'
    return status


def adjusted_quantity(current, delta):
    return max(0, (current or 0) + delta)
