# app/services/order_service.py
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.domain import cart as cart_ops
from app.domain import orders as order_ops
from app.domain.coupons import NOT_VALID, calculate_discount, ensure_applicable, record_usage
from app.domain.entities import Discount, Order, OrderStatus
from app.domain.errors import CouponIneligible, NotFoundError, ValidationError
from app.repos.cart_repo import CartRepo
from app.repos.coupon_repo import CouponRepo
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.repos.user_repo import UserRepo
from app.services.lock_service import LockService, cart_key, order_key
from app.services.notification_service import NotificationService
from app.services.stock_ledger import StockLedger
from app.utils.clock import utcnow
from app.utils.settings import CART_TTL_SECONDS, ORDER_NUMBER_PREFIX, RETURN_WINDOW_DAYS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order use cases: checkout from the cart and every later status change.
    Kept apart from CartService, the only shared piece is the cart lock taken at checkout.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.coupons = CouponRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)
        self.ledger = StockLedger(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()
        self.clock = clock

    def create_order_from_cart(
        self,
        user_id: int,
        shipping_address: dict,
        payment_method: str,
        actor: Optional[str] = None,
    ) -> Order:
        """
        Use case: checkout.

        1. re-validates the applied coupon against the current cart
        2. validates and commits stock for every active line (all or nothing)
        3. freezes the cart into a ``placed`` order
        4. records coupon usage
        5. empties the purchased lines from the cart

        Everything shares one transaction; any failure rolls all of it back.
        Notifications go out only after the commit.
        """
        with self.lock_service.hold(cart_key(user_id)):
            try:
                now = self.clock()
                customer = self.users.get_customer(user_id)
                if not customer:
                    raise NotFoundError("User not found")

                cart = self.carts.get_cart_by_user(user_id)
                if not cart or cart.status != "ACTIVE" or not cart.active_lines:
                    raise ValidationError("Cart is empty")

                coupon = None
                if cart.discount.coupon_id is not None:
                    coupon = self.coupons.get_coupon(cart.discount.coupon_id)
                    if coupon is None:
                        raise CouponIneligible(NOT_VALID)
                    ensure_applicable(coupon, customer, cart.subtotal, cart.active_lines, now)
                    cart_ops.apply_discount(
                        cart, coupon, calculate_discount(coupon, cart.subtotal, cart.active_lines)
                    )

                variants = self.products.get_variants(line.variant_id for line in cart.active_lines)
                for line in cart.active_lines:
                    variant = variants.get(line.variant_id)
                    if variant is None or not variant.is_active:
                        raise ValidationError(f"Product {line.product_id} is not available")

                self.ledger.reserve_and_commit(
                    (line.variant_id, line.quantity) for line in cart.active_lines
                )

                order = order_ops.create_order(
                    cart,
                    shipping_address=shipping_address,
                    payment_method=payment_method,
                    variants=variants,
                    now=now,
                    prefix=ORDER_NUMBER_PREFIX,
                    actor=actor,
                )
                self.repo.create_order(order)

                if coupon is not None:
                    usage = record_usage(coupon, user_id, order.id, order.discount.amount, now)
                    self.coupons.save_usage(coupon, usage)

                # purchased lines leave the cart, saved-for-later lines stay
                cart.lines = cart.saved_lines
                cart.discount = Discount()
                cart_ops.recompute(cart)
                cart.updated_at = now
                cart.expires_at = now + timedelta(seconds=CART_TTL_SECONDS)
                self.carts.save_cart(cart)

                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Order {order.order_number} ({order.id}) placed by user {user_id}, total {order.total}")
        self._notify(order, "order_placed")
        return order

    # queries
    def get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        order = self.repo.get_order(order_id)
        # someone else's order is reported as missing
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFoundError("Order not found")
        return order

    def get_order_by_number(self, order_number: str, user_id: Optional[int] = None) -> Order:
        order = self.repo.get_by_number(order_number.strip().upper())
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFoundError("Order not found")
        return order

    def list_orders(self, user_id: int) -> List[Order]:
        return self.repo.list_for_user(user_id)

    # commands
    def cancel_order(self, order_id: int, user_id: Optional[int], reason: str, actor: Optional[str] = None) -> Order:
        def action(order, now):
            released = order_ops.cancel(order, reason, now, actor=actor)
            self.ledger.release(released)

        return self._change(order_id, user_id, "cancelled", action)

    def return_order(self, order_id: int, user_id: Optional[int], reason: str, actor: Optional[str] = None) -> Order:
        def action(order, now):
            order_ops.request_return(order, reason, now, actor=actor, window_days=RETURN_WINDOW_DAYS)

        return self._change(order_id, user_id, "returned", action)

    def update_status(self, order_id: int, new_status: str, note: Optional[str] = None, actor: Optional[str] = None) -> Order:
        """Operator/carrier driven status change, checked against the transition table."""
        if new_status == OrderStatus.CANCELLED.value:
            return self.cancel_order(order_id, None, note or "Cancelled by operator", actor=actor)

        def action(order, now):
            order_ops.transition(order, new_status, now, note=note, actor=actor)

        return self._change(order_id, None, new_status, action)

    def record_payment(self, order_id: int, status: str, reference: Optional[str] = None) -> Order:
        def action(order, now):
            order_ops.record_payment(order, status, now, reference=reference)

        return self._change(order_id, None, f"payment {status}", action, notify=False)

    def _change(self, order_id, user_id, description, action, notify=True) -> Order:
        with self.lock_service.hold(order_key(order_id)):
            try:
                order = self.get_order(order_id, user_id)
                action(order, self.clock())
                self.repo.save_order(order)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Order {order.order_number}: {description}, status {order.status}")
        if notify:
            self._notify(order, f"order_{order.status}")
        return order

    def _notify(self, order: Order, event: str):
        try:
            self.notification_service.send_order_notification(
                order.user_id, order.order_number, event, order.status
            )
        except Exception as e:
            logger.warning(f"Notification for order {order.order_number} failed: {e}")
