# app/domain/orders.py
"""
Order lifecycle.

    placed -> confirmed -> processing -> packed -> shipped -> out_for_delivery -> delivered
    placed | confirmed | processing -> cancelled
    delivered (within the return window) -> returned -> refunded

Fulfilment may move forward past intermediate states (a carrier can report
``delivered`` straight after ``shipped``) but never backwards. ``cancelled``
and ``refunded`` are terminal. Every transition is appended to the status
history, which is never edited.
"""
import secrets
import string
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from app.domain.entities import (
    Cart,
    Discount,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    StatusEntry,
    VariantInfo,
)
from app.domain.errors import InvalidTransition, ValidationError

FULFILMENT_LINE = [
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

CANCELLABLE = {OrderStatus.PLACED, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}


def _build_transitions() -> Dict[OrderStatus, set]:
    table = {}
    for index, status in enumerate(FULFILMENT_LINE):
        targets = set(FULFILMENT_LINE[index + 1:])
        if status in CANCELLABLE:
            targets.add(OrderStatus.CANCELLED)
        table[status] = targets
    table[OrderStatus.DELIVERED].add(OrderStatus.RETURNED)
    table[OrderStatus.RETURNED] = {OrderStatus.REFUNDED}
    table[OrderStatus.CANCELLED] = set()
    table[OrderStatus.REFUNDED] = set()
    return table


ALLOWED_TRANSITIONS = _build_transitions()

_TIMESTAMP_FIELDS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.RETURNED: "returned_at",
}

_BASE36 = string.digits + string.ascii_uppercase


def _parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid order status: {value}")


def can_transition(current: str, target: str) -> bool:
    return _parse_status(target) in ALLOWED_TRANSITIONS[_parse_status(current)]


def _apply(order: Order, status: OrderStatus, note: Optional[str], actor: Optional[str], now: datetime):
    order.status = status.value
    field_name = _TIMESTAMP_FIELDS.get(status)
    if field_name:
        setattr(order, field_name, now)
    if status == OrderStatus.REFUNDED:
        order.payment.status = PaymentStatus.REFUNDED.value
        order.payment.refunded_at = now

    order.status_history.append(
        StatusEntry(
            status=status.value,
            timestamp=now,
            note=note or f"Order status changed to {status.value}",
            actor=actor,
        )
    )


def transition(
    order: Order,
    new_status: str,
    now: datetime,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> Order:
    target = _parse_status(new_status)
    current = _parse_status(order.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)

    _apply(order, target, note, actor, now)
    return order


def cancel(order: Order, reason: str, now: datetime, actor: Optional[str] = None) -> List[Tuple[int, int]]:
    """Cancel the order and return the (variant_id, quantity) pairs to put back in stock."""
    current = _parse_status(order.status)
    if current not in CANCELLABLE:
        raise InvalidTransition(
            current.value,
            OrderStatus.CANCELLED.value,
            f"Order cannot be cancelled at this stage (status: {current.value})",
        )

    order.cancellation_reason = reason
    _apply(order, OrderStatus.CANCELLED, f"Order cancelled. Reason: {reason}", actor, now)
    return [(item.variant_id, item.quantity) for item in order.items]


def request_return(
    order: Order,
    reason: str,
    now: datetime,
    actor: Optional[str] = None,
    window_days: int = 7,
) -> Order:
    current = _parse_status(order.status)
    if current != OrderStatus.DELIVERED or order.delivered_at is None:
        raise InvalidTransition(
            current.value,
            OrderStatus.RETURNED.value,
            "Only delivered orders can be returned",
        )
    if now - order.delivered_at > timedelta(days=window_days):
        raise InvalidTransition(
            current.value,
            OrderStatus.RETURNED.value,
            f"Return window of {window_days} days has expired",
        )

    order.return_reason = reason
    _apply(order, OrderStatus.RETURNED, f"Return requested. Reason: {reason}", actor, now)
    return order


def record_payment(order: Order, status: str, now: datetime, reference: Optional[str] = None) -> Order:
    try:
        payment_status = PaymentStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid payment status: {status}")

    order.payment.status = payment_status.value
    if reference:
        order.payment.reference = reference
    if payment_status == PaymentStatus.COMPLETED:
        order.payment.paid_at = now
    elif payment_status == PaymentStatus.REFUNDED:
        order.payment.refunded_at = now
    return order


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number(now: datetime, prefix: str = "AMB") -> str:
    timestamp = _base36(int(now.timestamp() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}-{timestamp}-{suffix}"


def estimate_delivery(placed_at: datetime, shipping_amount: int) -> datetime:
    # free shipping goes by the slower carrier
    days = 7 if shipping_amount == 0 else 3
    return placed_at + timedelta(days=days)


def create_order(
    cart: Cart,
    shipping_address: dict,
    payment_method: str,
    variants: Dict[int, VariantInfo],
    now: datetime,
    prefix: str = "AMB",
    actor: Optional[str] = None,
) -> Order:
    """Freeze the active cart lines and pricing into a new ``placed`` order."""
    lines = cart.active_lines
    if not lines:
        raise ValidationError("No order items provided")

    items = tuple(
        OrderItem(
            product_id=line.product_id,
            variant_id=line.variant_id,
            name=variants[line.variant_id].name if line.variant_id in variants else "",
            sku=variants[line.variant_id].sku if line.variant_id in variants else None,
            quantity=line.quantity,
            price=line.price,
            discount_price=line.discount_price,
            total_price=line.total_price,
        )
        for line in lines
    )

    order = Order(
        order_number=generate_order_number(now, prefix),
        user_id=cart.user_id,
        items=items,
        subtotal=cart.subtotal,
        discount=Discount(
            amount=cart.discount.amount,
            coupon_id=cart.discount.coupon_id,
            code=cart.discount.code,
            type=cart.discount.type,
        ),
        tax_rate=cart.tax_rate,
        tax_amount=cart.tax_amount,
        shipping_amount=cart.shipping_amount,
        shipping_method=cart.shipping_method,
        total=cart.total,
        currency=cart.currency,
        shipping_address=dict(shipping_address),
        payment=Payment(method=payment_method, amount=cart.total),
        placed_at=now,
        estimated_delivery=estimate_delivery(now, cart.shipping_amount),
    )
    order.status_history.append(
        StatusEntry(
            status=OrderStatus.PLACED.value,
            timestamp=now,
            note="Order placed successfully",
            actor=actor,
        )
    )
    return order
