from .stock import Category, TrackedItem, OpeningStock, StockInflow, StockOutflow
from .suppliers import Supplier, SupplyItem, Delivery
from .sales import Marketer, Order, OrderLine, Payment
from .ledger import Expense

__all__ = [
    'Category', 'TrackedItem', 'OpeningStock', 'StockInflow', 'StockOutflow',
    'Supplier', 'SupplyItem', 'Delivery',
    'Marketer', 'Order', 'OrderLine', 'Payment',
    'Expense',
]
