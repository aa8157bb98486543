"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, Boolean, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pos_register.database import Base


class Product(Base):
    """Product model (catalog side, read-only to the register)."""

    __tablename__ = 'product'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sku = Column(String, nullable=True, unique=True)
    barcode = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    sale_price = Column(Numeric(10, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')  # percent
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Cascade delete-orphan: deleting the product removes its stock row
    stock = relationship('ProductStock', uselist=False, back_populates='product', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"

    @property
    def on_hand_qty(self):
        """Get on hand quantity from stock."""
        if self.stock:
            return self.stock.on_hand_qty
        return 0
