"""Catalog snapshot type shared between the catalog and the cart."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ProductInfo:
    """Read-only snapshot of a catalog product."""
    id: str
    name: str
    sku: str
    unit_price: Decimal
    tax_rate: Decimal  # percent
    stock_quantity: int
    barcode: Optional[str] = None
    category: Optional[str] = None
