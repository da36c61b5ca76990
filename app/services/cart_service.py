from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain import cart as cart_ops
from app.domain.coupons import calculate_discount, can_apply, ensure_applicable
from app.domain.entities import Cart, Customer
from app.domain.errors import NotFoundError, ValidationError
from app.repos.cart_repo import CartRepo
from app.repos.coupon_repo import CouponRepo
from app.repos.product_repo import ProductRepo
from app.repos.user_repo import UserRepo
from app.services.lock_service import LockService, cart_key
from app.utils.clock import utcnow
from app.utils.settings import CART_TTL_SECONDS, CURRENCY, SHIPPING_FEE, TAX_RATE
from app.utils.logging import get_logger

logger = get_logger(__name__)

ACTIVE = "ACTIVE"


class CartService:
    """
    Use cases for the cart.
    commands (add, update, remove, clear, save/move, coupon) run under the per-user cart lock
    and finish with one versioned save
    query (get) only creates the cart lazily on first access
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.coupons = CouponRepo(db)
        self.users = UserRepo(db)
        self.lock_service = lock_service
        self.clock = clock

    # query
    def get_cart(self, user_id: int) -> Cart:
        """Never takes the cart lock, so a read does not fail while a command is running."""
        cart = self.repo.get_cart_by_user(user_id)
        if cart and cart.status == ACTIVE:
            return cart

        self._customer(user_id)
        now = self.clock()

        if cart is not None:
            # expired: shown empty here, the next command reopens the row under the lock
            cart.status = ACTIVE
            return cart_ops.clear(cart)

        try:
            cart = self._new_cart(user_id, now)
            self.repo.commit()
        except IntegrityError:
            # a concurrent first access created it, one cart row per user
            self.repo.rollback()
            return self.repo.get_cart_by_user(user_id)

        logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    # commands
    def add_item(self, user_id: int, product_id: int, variant_id: int, quantity: int) -> Cart:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        variant = self.products.get_variant(variant_id)
        if not variant or variant.product_id != product_id or not variant.is_active:
            raise NotFoundError("Product variant not found or unavailable")

        def action(cart, customer, now):
            cart_ops.add_line(cart, variant, quantity, now)
            self._refresh_discount(cart, customer, now)

        return self._mutate(user_id, f"add variant {variant_id} x{quantity}", action)

    def update_item(self, user_id: int, item_id: str, quantity: int) -> Cart:
        def action(cart, customer, now):
            line = cart.find_line(item_id)
            if line is None:
                raise NotFoundError("Item not found in cart")
            cart_ops.update_line_quantity(cart, item_id, quantity, self._stock(line.variant_id))
            self._refresh_discount(cart, customer, now)

        return self._mutate(user_id, f"update item {item_id} to x{quantity}", action)

    def remove_item(self, user_id: int, item_id: str) -> Cart:
        def action(cart, customer, now):
            cart_ops.remove_line(cart, item_id)
            self._refresh_discount(cart, customer, now)

        return self._mutate(user_id, f"remove item {item_id}", action)

    def clear_cart(self, user_id: int) -> Cart:
        return self._mutate(user_id, "clear", lambda cart, customer, now: cart_ops.clear(cart))

    def save_for_later(self, user_id: int, item_id: str) -> Cart:
        def action(cart, customer, now):
            cart_ops.save_for_later(cart, item_id)
            self._refresh_discount(cart, customer, now)

        return self._mutate(user_id, f"save item {item_id} for later", action)

    def move_to_cart(self, user_id: int, item_id: str) -> Cart:
        def action(cart, customer, now):
            line = cart.find_line(item_id)
            if line is None:
                raise NotFoundError("Item not found in saved items")
            cart_ops.move_to_cart(cart, item_id, self._stock(line.variant_id))
            self._refresh_discount(cart, customer, now)

        return self._mutate(user_id, f"move item {item_id} to cart", action)

    def apply_coupon(self, user_id: int, code: str) -> Tuple[Cart, int]:
        if not code or not code.strip():
            raise ValidationError("Coupon code is required")

        applied = {}

        def action(cart, customer, now):
            if not cart.active_lines:
                raise ValidationError("Cart is empty")

            coupon = self.coupons.get_by_code(code)
            if not coupon or not coupon.is_active:
                raise NotFoundError("Invalid coupon code")

            ensure_applicable(coupon, customer, cart.subtotal, cart.active_lines, now)
            amount = calculate_discount(coupon, cart.subtotal, cart.active_lines)
            cart_ops.apply_discount(cart, coupon, amount)
            applied["amount"] = amount

        cart = self._mutate(user_id, f"apply coupon {code.strip().upper()}", action)
        return cart, applied["amount"]

    def remove_coupon(self, user_id: int) -> Cart:
        return self._mutate(
            user_id, "remove coupon", lambda cart, customer, now: cart_ops.remove_discount(cart)
        )

    # helpers
    def _mutate(self, user_id: int, description: str, action) -> Cart:
        with self.lock_service.hold(cart_key(user_id)):
            try:
                now = self.clock()
                customer = self._customer(user_id)
                cart = self._load_or_create(user_id, now)

                action(cart, customer, now)

                # every action extends the idle expiry
                cart.updated_at = now
                cart.expires_at = now + timedelta(seconds=CART_TTL_SECONDS)
                self.repo.save_cart(cart)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Cart {cart.id} of user {user_id}: {description}, version {cart.version}")
        return cart

    def _customer(self, user_id: int) -> Customer:
        customer = self.users.get_customer(user_id)
        if not customer:
            raise NotFoundError("User not found")
        return customer

    def _load_or_create(self, user_id: int, now: datetime) -> Cart:
        cart = self.repo.get_cart_by_user(user_id)

        if cart is None:
            cart = self._new_cart(user_id, now)
            logger.info(f"Created cart {cart.id} for user {user_id}")

        elif cart.status != ACTIVE:
            # an expired cart is reopened empty, the row stays one per user
            logger.info(f"Reopening {cart.status.lower()} cart {cart.id} for user {user_id}")
            cart.status = ACTIVE
            cart_ops.clear(cart)

        return cart

    def _new_cart(self, user_id: int, now: datetime) -> Cart:
        cart = Cart(
            user_id=user_id,
            tax_rate=Decimal(TAX_RATE),
            shipping_fee=SHIPPING_FEE,
            currency=CURRENCY,
            expires_at=now + timedelta(seconds=CART_TTL_SECONDS),
            updated_at=now,
        )
        cart_ops.recompute(cart)
        return self.repo.create_cart(cart)

    def _stock(self, variant_id: int) -> int:
        variant = self.products.get_variant(variant_id)
        if not variant or not variant.is_active:
            raise NotFoundError("Product variant not found or unavailable")
        return variant.stock

    def _refresh_discount(self, cart: Cart, customer: Customer, now: datetime):
        """Re-price an applied coupon against the new cart contents, or drop it."""
        if cart.discount.coupon_id is None:
            return

        coupon = self.coupons.get_coupon(cart.discount.coupon_id)
        if coupon is None:
            cart_ops.remove_discount(cart)
            return

        result = can_apply(coupon, customer, cart.subtotal, cart.active_lines, now)
        if not result.ok:
            logger.info(f"Coupon {coupon.code} dropped from cart {cart.id}: {result.reason}")
            cart_ops.remove_discount(cart)
            return

        cart_ops.apply_discount(cart, coupon, calculate_discount(coupon, cart.subtotal, cart.active_lines))
