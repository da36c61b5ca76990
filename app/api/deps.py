# app/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.services.cart_service import CartService
from app.services.coupon_service import CouponService
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService

_lock_service: LockService | None = None


def get_lock_service() -> LockService:
    # one Redis connection pool per process
    global _lock_service
    if _lock_service is None:
        _lock_service = LockService()
    return _lock_service


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cart_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)


def get_order_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(db=db, lock_service=lock_service, notification_service=notification_service)


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    return CouponService(db=db)
