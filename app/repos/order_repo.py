# app/repos/order_repo.py
from decimal import Decimal
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel, OrderStatusEntryModel
from app.domain.entities import Discount, Order, OrderItem, Payment, StatusEntry
from app.domain.errors import ConcurrencyConflict
from app.utils.clock import ensure_utc

_TIMESTAMPS = (
    "placed_at",
    "confirmed_at",
    "shipped_at",
    "delivered_at",
    "cancelled_at",
    "returned_at",
    "estimated_delivery",
)


def _to_domain(model: OrderModel) -> Order:
    return Order(
        id=model.id,
        order_number=model.order_number,
        user_id=model.user_id,
        status=model.status,
        version=model.version,
        items=tuple(
            OrderItem(
                product_id=i.product_id,
                variant_id=i.variant_id,
                name=i.name,
                sku=i.sku,
                quantity=i.quantity,
                price=i.price,
                discount_price=i.discount_price,
                total_price=i.total_price,
            )
            for i in model.items
        ),
        subtotal=model.subtotal,
        discount=Discount(
            amount=model.discount_amount,
            coupon_id=model.discount_coupon_id,
            code=model.discount_code,
            type=model.discount_type,
        ),
        tax_rate=Decimal(model.tax_rate),
        tax_amount=model.tax_amount,
        shipping_amount=model.shipping_amount,
        shipping_method=model.shipping_method,
        total=model.total,
        currency=model.currency,
        shipping_address=dict(model.shipping_address or {}),
        payment=Payment(
            method=model.payment_method,
            amount=model.payment_amount,
            status=model.payment_status,
            reference=model.payment_reference,
            paid_at=ensure_utc(model.paid_at),
            refunded_at=ensure_utc(model.refunded_at),
        ),
        cancellation_reason=model.cancellation_reason,
        return_reason=model.return_reason,
        status_history=[
            StatusEntry(
                status=e.status,
                timestamp=ensure_utc(e.timestamp),
                note=e.note,
                actor=e.actor,
            )
            for e in model.status_history
        ],
        **{name: ensure_utc(getattr(model, name)) for name in _TIMESTAMPS},
    )


def _history_row(entry: StatusEntry) -> OrderStatusEntryModel:
    return OrderStatusEntryModel(
        status=entry.status,
        timestamp=entry.timestamp,
        note=entry.note,
        actor=entry.actor,
    )


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: Order) -> Order:
        model = OrderModel(
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            version=1,
            subtotal=order.subtotal,
            discount_amount=order.discount.amount,
            discount_coupon_id=order.discount.coupon_id,
            discount_code=order.discount.code,
            discount_type=order.discount.type,
            tax_rate=order.tax_rate,
            tax_amount=order.tax_amount,
            shipping_amount=order.shipping_amount,
            shipping_method=order.shipping_method,
            total=order.total,
            currency=order.currency,
            shipping_address=order.shipping_address,
            payment_method=order.payment.method,
            payment_status=order.payment.status,
            payment_reference=order.payment.reference,
            payment_amount=order.payment.amount,
            items=[
                OrderItemModel(
                    product_id=i.product_id,
                    variant_id=i.variant_id,
                    name=i.name,
                    sku=i.sku,
                    quantity=i.quantity,
                    price=i.price,
                    discount_price=i.discount_price,
                    total_price=i.total_price,
                )
                for i in order.items
            ],
            status_history=[_history_row(e) for e in order.status_history],
            **{name: getattr(order, name) for name in _TIMESTAMPS},
        )
        self.db.add(model)
        self.db.flush()
        order.id = model.id
        order.version = model.version
        return order

    def get_order(self, order_id: int) -> Order | None:
        model = self.db.get(OrderModel, order_id)
        return _to_domain(model) if model else None

    def get_by_number(self, order_number: str) -> Order | None:
        model = self.db.execute(
            select(OrderModel).where(OrderModel.order_number == order_number)
        ).scalar_one_or_none()
        return _to_domain(model) if model else None

    def list_for_user(self, user_id: int) -> List[Order]:
        models = self.db.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.placed_at.desc(), OrderModel.id.desc())
        ).scalars().all()
        return [_to_domain(m) for m in models]

    def save_order(self, order: Order) -> Order:
        """Write back the mutable part of an order: status, timestamps, payment, history."""
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id, OrderModel.version == order.version)
            .values(
                status=order.status,
                version=order.version + 1,
                payment_status=order.payment.status,
                payment_reference=order.payment.reference,
                paid_at=order.payment.paid_at,
                refunded_at=order.payment.refunded_at,
                cancellation_reason=order.cancellation_reason,
                return_reason=order.return_reason,
                **{name: getattr(order, name) for name in _TIMESTAMPS},
            )
        )
        if result.rowcount == 0:
            raise ConcurrencyConflict("Order was modified by another request")
        order.version += 1

        model = self.db.get(OrderModel, order.id)
        # history is append-only, only the entries the row does not have yet are written
        for entry in order.status_history[len(model.status_history):]:
            model.status_history.append(_history_row(entry))
        self.db.flush()
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
