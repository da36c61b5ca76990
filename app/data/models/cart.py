#app/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    status = Column(String, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    currency = Column(String(3), nullable=False, default="INR")

    discount_amount = Column(Integer, nullable=False, default=0)
    discount_coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)
    discount_code = Column(String(64), nullable=True)
    discount_type = Column(String(20), nullable=True)

    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Integer, nullable=False, default=0)
    shipping_fee = Column(Integer, nullable=False, default=0)
    shipping_amount = Column(Integer, nullable=False, default=0)
    shipping_method = Column(String(40), nullable=True)

    subtotal = Column(Integer, nullable=False, default=0)
    total_items = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.position",
    )
