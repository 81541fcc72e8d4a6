from .tenancy import Shop, Salesman
from .inventory import Product, InventoryMovement
from .sales import Sale, SaleItem
from .commissions import CommissionRule, SalesmanCommissionRule, Commission

__all__ = [
    'Shop', 'Salesman',
    'Product', 'InventoryMovement',
    'Sale', 'SaleItem',
    'CommissionRule', 'SalesmanCommissionRule', 'Commission',
]
