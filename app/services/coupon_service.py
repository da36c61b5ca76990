# app/services/coupon_service.py
from datetime import datetime
from typing import Callable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.coupons import find_valid_coupons
from app.domain.entities import Coupon, CouponType
from app.domain.errors import NotFoundError, ValidationError
from app.repos.cart_repo import CartRepo
from app.repos.coupon_repo import CouponRepo
from app.repos.user_repo import UserRepo
from app.utils.clock import utcnow
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CouponService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = CouponRepo(db)
        self.carts = CartRepo(db)
        self.users = UserRepo(db)
        self.clock = clock

    def create_coupon(self, coupon: Coupon) -> Coupon:
        if coupon.valid_until < coupon.valid_from:
            raise ValidationError("validUntil must not be before validFrom")
        if coupon.type == CouponType.PERCENTAGE.value and coupon.value > 100:
            raise ValidationError("Percentage coupons cannot exceed 100")
        if coupon.type == CouponType.BUY_X_GET_Y.value and not (coupon.buy_quantity and coupon.get_quantity):
            raise ValidationError("buy_x_get_y coupons need buyQuantity and getQuantity")

        try:
            created = self.repo.create_coupon(coupon)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"Coupon code {coupon.code.strip().upper()} already exists")

        logger.info(f"Coupon {created.code} ({created.type}) created")
        return created

    def get_coupon(self, code: str) -> Coupon:
        coupon = self.repo.get_by_code(code)
        if not coupon:
            raise NotFoundError("Invalid coupon code")
        return coupon

    def available_for_user(self, user_id: int) -> List[Coupon]:
        """Every active coupon the user's current cart qualifies for."""
        customer = self.users.get_customer(user_id)
        if not customer:
            raise NotFoundError("User not found")

        cart = self.carts.get_cart_by_user(user_id)
        if not cart or cart.status != "ACTIVE" or not cart.active_lines:
            return []

        now = self.clock()
        return find_valid_coupons(
            self.repo.list_active(now), customer, cart.subtotal, cart.active_lines, now
        )
