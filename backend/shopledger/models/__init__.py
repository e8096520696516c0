from .catalog import Product, Inventory
from .sales import Cart, CartItem, Order, OrderItem
from .logistics import Shipment, ShipmentItem
from .finance import CashFlow
from .auth import User
from .documents import DocumentSequence

__all__ = [
    'Product', 'Inventory',
    'Cart', 'CartItem', 'Order', 'OrderItem',
    'Shipment', 'ShipmentItem',
    'CashFlow',
    'User',
    'DocumentSequence',
]
