# app/data/models/product.py
from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    category_id = Column(Integer, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    variants = relationship("VariantModel", back_populates="product")


class VariantModel(Base):
    """One purchasable size/color/sku of a product, stock is kept per row."""

    __tablename__ = "variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    sku = Column(String(64), nullable=True)
    size = Column(String(20), nullable=True)
    color = Column(String(40), nullable=True)

    # minor units
    price = Column(Integer, nullable=False)
    discount_price = Column(Integer, nullable=True)

    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="variants")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),
        UniqueConstraint("product_id", "sku", name="u_product_sku"),
    )
