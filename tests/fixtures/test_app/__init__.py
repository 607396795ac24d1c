"""Test application package."""

from .aggregates import (
    GiftWrapRequested,
    ItemAdded,
    LenientOrder,
    Order,
    OrderCancelled,
    OrderPlaced,
)

__all__ = [
    "Order",
    "LenientOrder",
    "OrderPlaced",
    "ItemAdded",
    "OrderCancelled",
    "GiftWrapRequested",
]
