# app/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_cart_service
from app.domain.schemas import CartOut, CouponIn, ItemIn, UpdateItemIn, envelope
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.get_cart(user_id)
    return envelope(CartOut.from_domain(cart), "Cart retrieved successfully")


@router.delete("")
def clear_cart(
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.clear_cart(user_id)
    return envelope(CartOut.from_domain(cart), "Cart cleared successfully")


@router.post("/items")
def add_item(
    payload: ItemIn,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.add_item(
        user_id=user_id,
        product_id=payload.product_id,
        variant_id=payload.variant_id,
        quantity=payload.quantity,
    )
    return envelope(CartOut.from_domain(cart), "Item added to cart successfully")


@router.put("/items/{item_id}")
def update_item(
    item_id: str,
    payload: UpdateItemIn,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.update_item(user_id, item_id, payload.quantity)
    return envelope(CartOut.from_domain(cart), "Cart item updated successfully")


@router.delete("/items/{item_id}")
def remove_item(
    item_id: str,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.remove_item(user_id, item_id)
    return envelope(CartOut.from_domain(cart), "Item removed from cart successfully")


@router.post("/items/{item_id}/save-for-later")
def save_for_later(
    item_id: str,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.save_for_later(user_id, item_id)
    return envelope(CartOut.from_domain(cart), "Item saved for later")


@router.post("/items/{item_id}/move-to-cart")
def move_to_cart(
    item_id: str,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.move_to_cart(user_id, item_id)
    return envelope(CartOut.from_domain(cart), "Item moved to cart")


@router.post("/coupon")
def apply_coupon(
    payload: CouponIn,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart, amount = svc.apply_coupon(user_id, payload.code)
    data = CartOut.from_domain(cart).model_dump(mode="json", by_alias=True)
    data["discountAmount"] = amount
    return envelope(data, "Coupon applied successfully")


@router.delete("/coupon")
def remove_coupon(
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.remove_coupon(user_id)
    return envelope(CartOut.from_domain(cart), "Coupon removed successfully")
