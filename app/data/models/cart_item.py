from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(String(32), primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False)
    category_id = Column(Integer, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False)
    # price snapshot taken when the line was added
    price = Column(Integer, nullable=False)
    discount_price = Column(Integer, nullable=True)
    total_price = Column(Integer, nullable=False)

    saved_for_later = Column(Boolean, nullable=False, default=False)
    added_at = Column(DateTime(timezone=True), nullable=True)

    cart = relationship("CartModel", back_populates="items")
