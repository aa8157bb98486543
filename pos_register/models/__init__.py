"""Models package - exports SQLAlchemy catalog models and register value objects."""
# Catalog (SQLAlchemy)
from pos_register.models.product import Product
from pos_register.models.product_stock import ProductStock

# Register (in-memory)
from pos_register.models.catalog import ProductInfo
from pos_register.models.cart import CartLine, CartState, Customer, PaymentMethod, TENDER_CHANNELS
from pos_register.models.sale import CartTotals, Sale, SaleLine, SaleStatus, TenderBreakdown

__all__ = [
    # Catalog
    'Product', 'ProductStock',
    # Register
    'ProductInfo', 'CartLine', 'CartState', 'Customer', 'PaymentMethod', 'TENDER_CHANNELS',
    'CartTotals', 'Sale', 'SaleLine', 'SaleStatus', 'TenderBreakdown',
]
