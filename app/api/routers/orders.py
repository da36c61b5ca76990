# app/api/routers/orders.py
from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_order_service
from app.domain.schemas import (
    OrderCreate,
    OrderOut,
    PaymentUpdateIn,
    ReasonIn,
    StatusUpdateIn,
    envelope,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.create_order_from_cart(
        user_id=user_id,
        shipping_address=payload.shipping_address,
        payment_method=payload.payment_method,
        actor=f"user:{user_id}",
    )
    return envelope(OrderOut.from_domain(order), "Order placed successfully")


@router.get("")
def list_orders(
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    orders = svc.list_orders(user_id)
    return envelope([OrderOut.from_domain(o) for o in orders], "Orders retrieved successfully")


# declared before /{order_id} so "track" is not parsed as an id
@router.get("/track/{order_number}")
def track_order(
    order_number: str,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.get_order_by_number(order_number, user_id)
    data = {
        "orderNumber": order.order_number,
        "status": order.status,
        "estimatedDelivery": order.estimated_delivery.isoformat() if order.estimated_delivery else None,
        "statusHistory": [
            {"status": e.status, "timestamp": e.timestamp.isoformat(), "note": e.note}
            for e in order.status_history
        ],
    }
    return envelope(data, "Order tracking retrieved successfully")


@router.get("/{order_id}")
def get_order(
    order_id: int,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.get_order(order_id, user_id)
    return envelope(OrderOut.from_domain(order), "Order retrieved successfully")


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    payload: ReasonIn,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.cancel_order(order_id, user_id, payload.reason, actor=f"user:{user_id}")
    return envelope(OrderOut.from_domain(order), "Order cancelled successfully")


@router.put("/{order_id}/return")
def return_order(
    order_id: int,
    payload: ReasonIn,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.return_order(order_id, user_id, payload.reason, actor=f"user:{user_id}")
    return envelope(OrderOut.from_domain(order), "Return request submitted successfully")


@router.put("/{order_id}/status")
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_status(order_id, payload.status, note=payload.note, actor=payload.actor)
    return envelope(OrderOut.from_domain(order), "Order status updated successfully")


@router.put("/{order_id}/payment")
def update_payment(
    order_id: int,
    payload: PaymentUpdateIn,
    svc: OrderService = Depends(get_order_service),
):
    order = svc.record_payment(order_id, payload.status, reference=payload.reference)
    return envelope(OrderOut.from_domain(order), "Payment status updated successfully")
