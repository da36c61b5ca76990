# app/repos/coupon_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.data.models.coupon import CouponModel, CouponUsageModel
from app.domain.entities import Coupon, CouponUsage
from app.domain.errors import CouponIneligible
from app.domain.coupons import NOT_VALID
from app.utils.clock import ensure_utc

_LIST_FIELDS = (
    "applicable_products",
    "applicable_categories",
    "excluded_products",
    "excluded_categories",
    "applicable_users",
    "user_tiers",
)

_SCALAR_FIELDS = (
    "name",
    "description",
    "type",
    "value",
    "usage_limit",
    "usage_limit_per_user",
    "used_count",
    "minimum_amount",
    "maximum_amount",
    "maximum_discount",
    "new_users_only",
    "buy_quantity",
    "get_quantity",
    "get_product_discount",
    "is_active",
    "total_discount_given",
)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _to_domain(model: CouponModel) -> Coupon:
    return Coupon(
        id=model.id,
        code=model.code,
        valid_from=ensure_utc(model.valid_from),
        valid_until=ensure_utc(model.valid_until),
        usage_history=[
            CouponUsage(
                user_id=u.user_id,
                order_id=u.order_id,
                discount_amount=u.discount_amount,
                used_at=ensure_utc(u.used_at),
            )
            for u in model.usages
        ],
        **{name: getattr(model, name) for name in _SCALAR_FIELDS},
        **{name: list(getattr(model, name) or []) for name in _LIST_FIELDS},
    )


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_coupon(self, coupon_id: int) -> Coupon | None:
        model = self.db.get(CouponModel, coupon_id)
        return _to_domain(model) if model else None

    def get_by_code(self, code: str) -> Coupon | None:
        model = self.db.execute(
            select(CouponModel).where(CouponModel.code == normalize_code(code))
        ).scalar_one_or_none()
        return _to_domain(model) if model else None

    def list_active(self, now: datetime) -> List[Coupon]:
        models = self.db.execute(
            select(CouponModel).where(
                CouponModel.is_active.is_(True),
                CouponModel.valid_from <= now,
                CouponModel.valid_until >= now,
                or_(
                    CouponModel.usage_limit.is_(None),
                    CouponModel.used_count < CouponModel.usage_limit,
                ),
            )
        ).scalars().all()
        return [_to_domain(m) for m in models]

    def create_coupon(self, coupon: Coupon) -> Coupon:
        model = CouponModel(
            code=normalize_code(coupon.code),
            valid_from=coupon.valid_from,
            valid_until=coupon.valid_until,
            **{name: getattr(coupon, name) for name in _SCALAR_FIELDS},
            **{name: list(getattr(coupon, name)) for name in _LIST_FIELDS},
        )
        self.db.add(model)
        self.db.flush()
        coupon.id = model.id
        coupon.code = model.code
        return coupon

    def save_usage(self, coupon: Coupon, usage: CouponUsage) -> None:
        """Persist one usage. The conditional update keeps used_count within usage_limit."""
        result = self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon.id,
                or_(
                    CouponModel.usage_limit.is_(None),
                    CouponModel.used_count < CouponModel.usage_limit,
                ),
            )
            .values(
                used_count=CouponModel.used_count + 1,
                total_discount_given=CouponModel.total_discount_given + usage.discount_amount,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CouponIneligible(NOT_VALID)

        # counters were bumped in SQL, drop the stale in-session copy
        model = self.db.get(CouponModel, coupon.id)
        if model is not None:
            self.db.expire(model)

        self.db.add(
            CouponUsageModel(
                coupon_id=coupon.id,
                user_id=usage.user_id,
                order_id=usage.order_id,
                discount_amount=usage.discount_amount,
                used_at=usage.used_at,
            )
        )
        self.db.flush()
