from .base import BaseModel, TimestampMixin
from .representative import Representative
from .rotation import RotationCursor, CURSOR_ID
from .product import Product, AgentStock
from .agent import DeliveryAgent
from .order import Order, OrderItem, OrderNote, OrderStatus
from .inventory import InventoryEffect

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Representative",
    "RotationCursor",
    "CURSOR_ID",
    "Product",
    "AgentStock",
    "DeliveryAgent",
    "Order",
    "OrderItem",
    "OrderNote",
    "OrderStatus",
    "InventoryEffect",
]
