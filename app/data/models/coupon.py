# app/data/models/coupon.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.data.database import Base


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    # always stored upper-case
    code = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False)
    value = Column(Integer, nullable=False)

    usage_limit = Column(Integer, nullable=True)  # null = unlimited
    usage_limit_per_user = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)

    minimum_amount = Column(Integer, nullable=False, default=0)
    maximum_amount = Column(Integer, nullable=True)
    maximum_discount = Column(Integer, nullable=True)

    applicable_products = Column(JSON, nullable=False, default=list)
    applicable_categories = Column(JSON, nullable=False, default=list)
    excluded_products = Column(JSON, nullable=False, default=list)
    excluded_categories = Column(JSON, nullable=False, default=list)
    applicable_users = Column(JSON, nullable=False, default=list)
    user_tiers = Column(JSON, nullable=False, default=list)
    new_users_only = Column(Boolean, nullable=False, default=False)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)

    buy_quantity = Column(Integer, nullable=True)
    get_quantity = Column(Integer, nullable=True)
    get_product_discount = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    total_discount_given = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    usages = relationship(
        "CouponUsageModel",
        back_populates="coupon",
        cascade="all, delete-orphan",
        order_by="CouponUsageModel.id",
    )


class CouponUsageModel(Base):
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    discount_amount = Column(Integer, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False)

    coupon = relationship("CouponModel", back_populates="usages")
