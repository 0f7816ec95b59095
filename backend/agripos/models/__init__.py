from .catalog import Branch, Product, Customer, DocumentSequence
from .inventory import Inventory, InventoryTransaction, InventoryReservation
from .sessions import PosSession
from .sales import PosTransaction, PosTransactionItem, PosPayment
from .orders import OnlineOrder, OrderItem, OrderStatusHistory

__all__ = [
    'Branch', 'Product', 'Customer', 'DocumentSequence',
    'Inventory', 'InventoryTransaction', 'InventoryReservation',
    'PosSession',
    'PosTransaction', 'PosTransactionItem', 'PosPayment',
    'OnlineOrder', 'OrderItem', 'OrderStatusHistory',
]
