# app/domain/cart.py
"""
Cart aggregation.

Every mutating function validates first, then changes lines, then calls
``recompute`` so the derived totals are never stale:

    total = max(0, subtotal + tax + shipping - discount)

Saved-for-later lines stay in the cart but are left out of every total.
"""
from datetime import datetime

from app.domain.entities import Cart, CartLine, Coupon, CouponType, Discount, VariantInfo
from app.domain.errors import InsufficientStock, NotFoundError, ValidationError
from app.domain.money import clamp_zero, percent_of


def recompute(cart: Cart) -> Cart:
    for line in cart.lines:
        line.total_price = line.quantity * line.unit_price

    active = cart.active_lines
    cart.total_items = sum(line.quantity for line in active)
    cart.subtotal = sum(line.total_price for line in active)
    cart.tax_amount = percent_of(cart.subtotal, cart.tax_rate)

    if not active or cart.discount.type == CouponType.FREE_SHIPPING.value:
        cart.shipping_amount = 0
    else:
        cart.shipping_amount = cart.shipping_fee

    cart.total = clamp_zero(
        cart.subtotal + cart.tax_amount + cart.shipping_amount - cart.discount.amount
    )
    return cart


def _require_quantity(quantity: int):
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")


def _require_line(cart: Cart, line_id: str) -> CartLine:
    line = cart.find_line(line_id)
    if line is None:
        raise NotFoundError("Item not found in cart")
    return line


def add_line(cart: Cart, variant: VariantInfo, quantity: int, now: datetime) -> CartLine:
    _require_quantity(quantity)
    if not variant.is_active:
        raise NotFoundError("Product variant not found or unavailable")

    existing = next(
        (line for line in cart.lines if line.key == (variant.product_id, variant.id)),
        None,
    )

    if existing:
        new_quantity = existing.quantity + quantity
        if new_quantity > variant.stock:
            raise InsufficientStock(
                variant.stock,
                f"Cannot add more items. Only {variant.stock} available in stock",
            )
        existing.quantity = new_quantity
        # adding a saved variant again brings it back to the cart
        existing.saved_for_later = False
        line = existing
    else:
        if quantity > variant.stock:
            raise InsufficientStock(variant.stock)
        # price is snapshotted here, later catalogue changes do not reprice the line
        line = CartLine(
            product_id=variant.product_id,
            variant_id=variant.id,
            category_id=variant.category_id,
            quantity=quantity,
            price=variant.price,
            discount_price=variant.discount_price,
            added_at=now,
        )
        cart.lines.append(line)

    recompute(cart)
    return line


def update_line_quantity(cart: Cart, line_id: str, quantity: int, stock: int) -> CartLine:
    _require_quantity(quantity)
    line = _require_line(cart, line_id)
    if quantity > stock:
        raise InsufficientStock(stock)

    line.quantity = quantity
    recompute(cart)
    return line


def remove_line(cart: Cart, line_id: str) -> CartLine:
    line = _require_line(cart, line_id)
    cart.lines.remove(line)
    recompute(cart)
    return line


def clear(cart: Cart) -> Cart:
    cart.lines = []
    cart.discount = Discount()
    return recompute(cart)


def save_for_later(cart: Cart, line_id: str) -> CartLine:
    line = _require_line(cart, line_id)
    line.saved_for_later = True
    recompute(cart)
    return line


def move_to_cart(cart: Cart, line_id: str, stock: int) -> CartLine:
    line = cart.find_line(line_id)
    if line is None:
        raise NotFoundError("Item not found in saved items")
    if line.quantity > stock:
        raise InsufficientStock(stock)

    line.saved_for_later = False
    recompute(cart)
    return line


def apply_discount(cart: Cart, coupon: Coupon, amount: int) -> Cart:
    cart.discount = Discount(
        amount=amount,
        coupon_id=coupon.id,
        code=coupon.code,
        type=coupon.type,
    )
    return recompute(cart)


def remove_discount(cart: Cart) -> Cart:
    cart.discount = Discount()
    return recompute(cart)
