from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # placed, confirmed, processing, packed, shipped, out_for_delivery, delivered, cancelled, returned, refunded
    status = Column(String(20), nullable=False, default="placed", index=True)
    version = Column(Integer, nullable=False, default=1)

    # pricing is frozen at checkout, never recomputed from the cart
    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    discount_coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)
    discount_code = Column(String(64), nullable=True)
    discount_type = Column(String(20), nullable=True)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Integer, nullable=False, default=0)
    shipping_amount = Column(Integer, nullable=False, default=0)
    shipping_method = Column(String(40), nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    total = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")

    shipping_address = Column(JSON, nullable=False)

    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_reference = Column(String(128), nullable=True)
    payment_amount = Column(Integer, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    placed_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    return_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    status_history = relationship(
        "OrderStatusEntryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusEntryModel.id",
    )
