from .enums import UserRole, SessionStatus, SaleStatus, PaymentMethod, AdjustmentType
from .auth import User
from .catalog import Category, Product
from .registers import CashRegisterSession
from .sales import Sale, SaleItem
from .inventory import InventoryAdjustment

__all__ = [
    'UserRole', 'SessionStatus', 'SaleStatus', 'PaymentMethod', 'AdjustmentType',
    'User',
    'Category', 'Product',
    'CashRegisterSession',
    'Sale', 'SaleItem',
    'InventoryAdjustment',
]
