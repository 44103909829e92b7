from .catalog import Category, Product, Supplier, Customer
from .inventory import StockMovement, DocumentSequence
from .purchasing import PurchaseOrder, PurchaseOrderItem, GoodsReceipt, GoodsReceiptItem, AccountsPayable
from .sales import SalesOrder, SalesOrderItem, AccountsReceivable

__all__ = [
    'Category', 'Product', 'Supplier', 'Customer',
    'StockMovement', 'DocumentSequence',
    'PurchaseOrder', 'PurchaseOrderItem', 'GoodsReceipt', 'GoodsReceiptItem', 'AccountsPayable',
    'SalesOrder', 'SalesOrderItem', 'AccountsReceivable',
]
