# app/api/routers/coupons.py
from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_coupon_service
from app.domain.schemas import CouponCreate, CouponOut, envelope
from app.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_coupon(payload: CouponCreate, svc: CouponService = Depends(get_coupon_service)):
    coupon = svc.create_coupon(payload.to_domain())
    return envelope(CouponOut.model_validate(coupon), "Coupon created successfully")


@router.get("/available")
def available_coupons(
    user_id: int = Query(..., gt=0),
    svc: CouponService = Depends(get_coupon_service),
):
    coupons = svc.available_for_user(user_id)
    return envelope([CouponOut.model_validate(c) for c in coupons], "Available coupons retrieved")


@router.get("/{code}")
def get_coupon(code: str, svc: CouponService = Depends(get_coupon_service)):
    coupon = svc.get_coupon(code)
    return envelope(CouponOut.model_validate(coupon), "Coupon retrieved successfully")
