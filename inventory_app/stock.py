"""
Derived stock information.

Status labels and summary statistics are computed from the current items
every time they are needed and are never stored.
"""
from enum import Enum
from typing import Iterable, NamedTuple

from . import schemas


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out of stock"
    LOW_STOCK = "low stock"
    IN_STOCK = "in stock"


def stock_status(quantity: int, min_stock: int) -> StockStatus:
    """
    Classify a stock level against its reorder threshold.

    >>> stock_status(3, 5)
    <StockStatus.LOW_STOCK: 'low stock'>
    """
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= min_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


class InventoryStats(NamedTuple):
    products: int
    units: int
    alerts: int


def summarize(items: Iterable[schemas.Product]) -> InventoryStats:
    """Count products, total units, and products at or below their threshold."""
    items = list(items)
    return InventoryStats(
        products=len(items),
        units=sum(item.quantity for item in items),
        alerts=sum(1 for item in items if item.quantity <= item.min_stock),
    )


def matches_search(item: schemas.Product, query: str) -> bool:
    """Case-insensitive substring match against name or category."""
    needle = query.lower()
    return needle in item.name.lower() or needle in item.category.lower()
