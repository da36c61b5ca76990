# app/domain/coupons.py
"""
Coupon evaluation.

``can_apply`` and ``calculate_discount`` are read-only; ``record_usage`` is the
only function that changes a coupon and it is called once per order, at
order creation, never while previewing a cart.

Eligibility checks run in a fixed order and stop at the first failure so
callers always see the same reason for the same input.
"""
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence

from app.domain.entities import Coupon, CouponType, CouponUsage, Customer
from app.domain.errors import CouponIneligible
from app.domain.money import clamp_zero, percent_of

NOT_VALID = "Coupon is not valid or expired"
MINIMUM_NOT_MET = "Minimum amount not met: order must be at least {amount}"
MAXIMUM_EXCEEDED = "Maximum amount exceeded: order must not exceed {amount}"
NOT_FOR_ACCOUNT = "Coupon is not applicable for your account"
TIER_MISMATCH = "Coupon is not applicable for your membership tier"
NEW_USERS_ONLY = "Coupon is for new users only"
USAGE_LIMIT_REACHED = "Coupon usage limit reached for your account"
NOT_FOR_CART_ITEMS = "Coupon is not applicable to items in your cart"
EXCLUDED_ITEMS = "Cart contains items excluded from this coupon"


class Eligibility(NamedTuple):
    ok: bool
    reason: Optional[str] = None
    code: Optional[str] = None


ELIGIBLE = Eligibility(True)


def _fail(code: str, reason: str) -> Eligibility:
    return Eligibility(False, reason, code)


def is_valid(coupon: Coupon, now: datetime) -> bool:
    if not coupon.is_active:
        return False
    if not (coupon.valid_from <= now <= coupon.valid_until):
        return False
    return coupon.usage_limit is None or coupon.used_count < coupon.usage_limit


def _matches(line, products: Sequence[int], categories: Sequence[int]) -> bool:
    return line.product_id in products or (
        line.category_id is not None and line.category_id in categories
    )


def can_apply(
    coupon: Coupon,
    user: Customer,
    cart_subtotal: int,
    cart_lines: Iterable,
    now: datetime,
) -> Eligibility:
    lines = list(cart_lines)

    if not is_valid(coupon, now):
        return _fail("not_valid", NOT_VALID)

    if cart_subtotal < coupon.minimum_amount:
        return _fail("minimum_amount", MINIMUM_NOT_MET.format(amount=coupon.minimum_amount))

    if coupon.maximum_amount is not None and cart_subtotal > coupon.maximum_amount:
        return _fail("maximum_amount", MAXIMUM_EXCEEDED.format(amount=coupon.maximum_amount))

    if coupon.applicable_users and user.id not in coupon.applicable_users:
        return _fail("user", NOT_FOR_ACCOUNT)

    if coupon.user_tiers and user.tier not in coupon.user_tiers:
        return _fail("tier", TIER_MISMATCH)

    if coupon.new_users_only and user.total_orders > 0:
        return _fail("new_users_only", NEW_USERS_ONLY)

    if coupon.uses_by(user.id) >= coupon.usage_limit_per_user:
        return _fail("usage_limit", USAGE_LIMIT_REACHED)

    if coupon.applicable_products or coupon.applicable_categories:
        if not any(
            _matches(line, coupon.applicable_products, coupon.applicable_categories)
            for line in lines
        ):
            return _fail("not_applicable", NOT_FOR_CART_ITEMS)

    # a single excluded line rejects the whole cart
    if coupon.excluded_products or coupon.excluded_categories:
        if any(
            _matches(line, coupon.excluded_products, coupon.excluded_categories)
            for line in lines
        ):
            return _fail("excluded", EXCLUDED_ITEMS)

    return ELIGIBLE


def ensure_applicable(coupon, user, cart_subtotal, cart_lines, now) -> None:
    result = can_apply(coupon, user, cart_subtotal, cart_lines, now)
    if not result.ok:
        raise CouponIneligible(result.reason)


def _buy_x_get_y(coupon: Coupon, lines: Sequence) -> int:
    if not coupon.buy_quantity or not coupon.get_quantity:
        return 0

    eligible = [
        line for line in lines
        if not coupon.applicable_products or line.product_id in coupon.applicable_products
    ]
    total_qty = sum(line.quantity for line in eligible)
    remaining = (total_qty // coupon.buy_quantity) * coupon.get_quantity
    share = coupon.get_product_discount or 100

    discount = 0
    # cheapest units are the free ones
    for line in sorted(eligible, key=lambda l: l.unit_price):
        if remaining <= 0:
            break
        free_qty = min(remaining, line.quantity)
        discount += percent_of(line.unit_price * free_qty, share)
        remaining -= free_qty
    return discount


def calculate_discount(coupon: Coupon, subtotal: int, cart_lines: Iterable) -> int:
    lines = list(cart_lines)

    if coupon.type == CouponType.PERCENTAGE.value:
        discount = percent_of(subtotal, coupon.value)
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
    elif coupon.type == CouponType.FIXED.value:
        discount = coupon.value
    elif coupon.type == CouponType.BUY_X_GET_Y.value:
        discount = _buy_x_get_y(coupon, lines)
    else:
        # free shipping is waived by the cart aggregator, not discounted here
        discount = 0

    return clamp_zero(min(discount, subtotal))


def record_usage(
    coupon: Coupon,
    user_id: int,
    order_id: Optional[int],
    discount_amount: int,
    now: datetime,
) -> CouponUsage:
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponIneligible(NOT_VALID)

    usage = CouponUsage(
        user_id=user_id,
        order_id=order_id,
        discount_amount=discount_amount,
        used_at=now,
    )
    coupon.used_count += 1
    coupon.total_discount_given += discount_amount
    coupon.usage_history.append(usage)
    return usage


def find_valid_coupons(
    coupons: Iterable[Coupon],
    user: Customer,
    cart_subtotal: int,
    cart_lines: Iterable,
    now: datetime,
) -> List[Coupon]:
    lines = list(cart_lines)
    return [
        coupon for coupon in coupons
        if can_apply(coupon, user, cart_subtotal, lines, now).ok
    ]
