"""
Catalog lookup service.

The catalog owns products and stock; the register only reads product
snapshots and asks the catalog to decrement stock after a sale.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from pos_register.exceptions import NotFoundError
from pos_register.models import Product, ProductStock, ProductInfo

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    """Contract the register expects from a product catalog."""

    def get_product(self, product_id: str) -> ProductInfo: ...

    def find_product(self, query: str) -> Optional[ProductInfo]: ...

    def decrement_stock(self, product_id: str, quantity: int) -> bool: ...


def _matches(product: ProductInfo, search_term: str) -> bool:
    return (
        search_term in product.name.lower()
        or search_term in (product.sku or '').lower()
    )


class MemoryCatalog:
    """Dictionary-backed catalog, used for demos and headless runs."""

    def __init__(self, products: Iterable[ProductInfo] = ()):
        self._products: Dict[str, ProductInfo] = {p.id: p for p in products}

    def add(self, product: ProductInfo) -> None:
        self._products[product.id] = product

    def get_product(self, product_id: str) -> ProductInfo:
        product = self._products.get(str(product_id))
        if product is None:
            raise NotFoundError(f'Product {product_id} not found')
        return product

    def find_product(self, query: str) -> Optional[ProductInfo]:
        """Exact barcode match first, then name/SKU substring."""
        search_term = (query or '').strip().lower()
        if not search_term:
            return None
        for product in self._products.values():
            if product.barcode and product.barcode.lower() == search_term:
                return product
        for product in self._products.values():
            if _matches(product, search_term):
                return product
        return None

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        product = self._products.get(str(product_id))
        if product is None or product.stock_quantity < quantity:
            return False
        self._products[product.id] = ProductInfo(
            id=product.id,
            name=product.name,
            sku=product.sku,
            unit_price=product.unit_price,
            tax_rate=product.tax_rate,
            stock_quantity=product.stock_quantity - quantity,
            barcode=product.barcode,
            category=product.category,
        )
        return True


def product_to_info(product: Product) -> ProductInfo:
    """Convert a Product row into the register's snapshot type."""
    return ProductInfo(
        id=str(product.id),
        name=product.name,
        sku=product.sku or '',
        unit_price=Decimal(str(product.sale_price)).quantize(Decimal('0.01')),
        tax_rate=Decimal(str(product.tax_rate or 0)),
        stock_quantity=int(product.on_hand_qty or 0),
        barcode=product.barcode,
        category=product.category,
    )


class SqlCatalog:
    """Catalog backed by the Product / ProductStock tables."""

    def __init__(self, session_factory):
        """
        Args:
            session_factory: callable returning the SQLAlchemy session to use
                (``pos_register.database.get_session`` in the app).
        """
        self._session_factory = session_factory

    @property
    def session(self):
        return self._session_factory()

    def _get_row(self, product_id) -> Optional[Product]:
        try:
            pk = int(product_id)
        except (TypeError, ValueError):
            return None
        return self.session.query(Product).filter(
            Product.id == pk,
            Product.active.is_(True)
        ).first()

    def get_product(self, product_id: str) -> ProductInfo:
        product = self._get_row(product_id)
        if not product:
            raise NotFoundError(f'Product {product_id} not found')
        return product_to_info(product)

    def find_product(self, query: str) -> Optional[ProductInfo]:
        search_term = (query or '').strip()[:100].lower()
        if not search_term:
            return None

        base = self.session.query(Product).filter(Product.active.is_(True))

        # Check for exact barcode match first
        exact_match = base.filter(
            Product.barcode.isnot(None),
            func.lower(Product.barcode) == search_term
        ).first()
        if exact_match:
            return product_to_info(exact_match)

        product = (base.filter(or_(
                        func.lower(Product.name).like(f'%{search_term}%'),
                        func.lower(Product.sku).like(f'%{search_term}%')
                    ))
                   .order_by(Product.name)
                   .first())
        return product_to_info(product) if product else None

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement on-hand stock; returns False instead of going negative."""
        session = self.session
        try:
            stock = session.query(ProductStock).filter(
                ProductStock.product_id == int(product_id)
            ).with_for_update().first()

            if stock is None or stock.on_hand_qty < quantity:
                session.rollback()
                logger.warning(
                    f"[CATALOG] Stock decrement refused: product_id={product_id}, "
                    f"qty={quantity}, on_hand={stock.on_hand_qty if stock else None}"
                )
                return False

            stock.on_hand_qty = stock.on_hand_qty - quantity
            session.commit()
            return True
        except (SQLAlchemyError, ValueError) as e:
            session.rollback()
            logger.error(f"[CATALOG] Stock decrement failed for product_id={product_id}: {e}")
            return False
