from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False)
    name = Column(String, nullable=False, default="")
    sku = Column(String(64), nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    discount_price = Column(Integer, nullable=True)
    total_price = Column(Integer, nullable=False)

    order = relationship("OrderModel", back_populates="items")


class OrderStatusEntryModel(Base):
    """Append-only audit row, one per status change."""

    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    note = Column(Text, nullable=True)
    actor = Column(String(64), nullable=True)

    order = relationship("OrderModel", back_populates="status_history")
