# app/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities import Cart, Coupon, CouponType, Order
from app.utils.clock import ensure_utc


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# requests

class ItemIn(ApiModel):
    product_id: int = Field(..., gt=0)
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class UpdateItemIn(ApiModel):
    quantity: int = Field(..., gt=0)


class CouponIn(ApiModel):
    code: str = Field(..., min_length=1, max_length=64)


class OrderCreate(ApiModel):
    shipping_address: dict
    payment_method: str = Field(..., min_length=1)


class ReasonIn(ApiModel):
    reason: str = Field(..., min_length=1, max_length=500)


class StatusUpdateIn(ApiModel):
    status: str
    note: Optional[str] = None
    actor: Optional[str] = None


class PaymentUpdateIn(ApiModel):
    status: str
    reference: Optional[str] = None


class CouponCreate(ApiModel):
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: CouponType
    value: int = Field(..., ge=0)
    valid_from: datetime
    valid_until: datetime
    usage_limit: Optional[int] = Field(None, ge=0)
    usage_limit_per_user: int = Field(1, ge=1)
    minimum_amount: int = Field(0, ge=0)
    maximum_amount: Optional[int] = Field(None, ge=0)
    maximum_discount: Optional[int] = Field(None, ge=0)
    applicable_products: List[int] = []
    applicable_categories: List[int] = []
    excluded_products: List[int] = []
    excluded_categories: List[int] = []
    applicable_users: List[int] = []
    user_tiers: List[str] = []
    new_users_only: bool = False
    buy_quantity: Optional[int] = Field(None, gt=0)
    get_quantity: Optional[int] = Field(None, gt=0)
    get_product_discount: Optional[int] = Field(None, ge=0, le=100)
    is_active: bool = True

    def to_domain(self) -> Coupon:
        data = self.model_dump()
        data["type"] = self.type.value
        data["valid_from"] = ensure_utc(self.valid_from)
        data["valid_until"] = ensure_utc(self.valid_until)
        return Coupon(**data)


class UserCreate(ApiModel):
    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=100)
    tier: Optional[str] = Field(None, pattern="^(bronze|silver|gold|platinum)$")
    total_orders: int = Field(0, ge=0)


class UserRead(ApiModel):
    id: int
    name: str
    tier: Optional[str] = None
    total_orders: int = 0


# responses

class DiscountOut(ApiModel):
    amount: int = 0
    coupon_id: Optional[int] = None
    code: Optional[str] = None
    type: Optional[str] = None


class TaxOut(ApiModel):
    rate: Decimal
    amount: int


class CartShippingOut(ApiModel):
    amount: int
    method: Optional[str] = None


class CartItemOut(ApiModel):
    id: str
    product_id: int
    variant_id: int
    category_id: Optional[int] = None
    quantity: int
    price: int
    discount_price: Optional[int] = None
    total_price: int
    saved_for_later: bool
    added_at: Optional[datetime] = None


class CartOut(ApiModel):
    id: Optional[int] = None
    user_id: int
    status: str
    items: List[CartItemOut]
    saved_for_later: List[CartItemOut]
    discount: DiscountOut
    tax: TaxOut
    shipping: CartShippingOut
    subtotal: int
    total_items: int
    total: int
    currency: str
    version: int
    expires_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, cart: Cart) -> "CartOut":
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            status=cart.status,
            items=[CartItemOut.model_validate(line) for line in cart.active_lines],
            saved_for_later=[CartItemOut.model_validate(line) for line in cart.saved_lines],
            discount=DiscountOut.model_validate(cart.discount),
            tax=TaxOut(rate=cart.tax_rate, amount=cart.tax_amount),
            shipping=CartShippingOut(amount=cart.shipping_amount, method=cart.shipping_method),
            subtotal=cart.subtotal,
            total_items=cart.total_items,
            total=cart.total,
            currency=cart.currency,
            version=cart.version,
            expires_at=cart.expires_at,
        )


class OrderItemOut(ApiModel):
    product_id: int
    variant_id: int
    name: str
    sku: Optional[str] = None
    quantity: int
    price: int
    discount_price: Optional[int] = None
    total_price: int


class StatusEntryOut(ApiModel):
    status: str
    timestamp: datetime
    note: Optional[str] = None
    actor: Optional[str] = None


class PaymentOut(ApiModel):
    method: str
    amount: int
    status: str
    reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


class OrderShippingOut(ApiModel):
    amount: int
    method: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


class OrderOut(ApiModel):
    id: int
    order_number: str
    user_id: int
    status: str
    items: List[OrderItemOut]
    subtotal: int
    discount: DiscountOut
    tax: TaxOut
    shipping: OrderShippingOut
    total: int
    currency: str
    shipping_address: dict
    payment: PaymentOut
    placed_at: datetime
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    return_reason: Optional[str] = None
    status_history: List[StatusEntryOut]

    @classmethod
    def from_domain(cls, order: Order) -> "OrderOut":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            items=[OrderItemOut.model_validate(item) for item in order.items],
            subtotal=order.subtotal,
            discount=DiscountOut.model_validate(order.discount),
            tax=TaxOut(rate=order.tax_rate, amount=order.tax_amount),
            shipping=OrderShippingOut(
                amount=order.shipping_amount,
                method=order.shipping_method,
                estimated_delivery=order.estimated_delivery,
            ),
            total=order.total,
            currency=order.currency,
            shipping_address=order.shipping_address,
            payment=PaymentOut.model_validate(order.payment),
            placed_at=order.placed_at,
            confirmed_at=order.confirmed_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            returned_at=order.returned_at,
            cancellation_reason=order.cancellation_reason,
            return_reason=order.return_reason,
            status_history=[StatusEntryOut.model_validate(e) for e in order.status_history],
        )


class CouponOut(ApiModel):
    id: Optional[int] = None
    code: str
    name: str
    description: Optional[str] = None
    type: str
    value: int
    minimum_amount: int
    maximum_amount: Optional[int] = None
    maximum_discount: Optional[int] = None
    usage_limit: Optional[int] = None
    usage_limit_per_user: int
    used_count: int
    new_users_only: bool
    user_tiers: List[str] = []
    buy_quantity: Optional[int] = None
    get_quantity: Optional[int] = None
    get_product_discount: Optional[int] = None
    valid_from: datetime
    valid_until: datetime
    is_active: bool


def envelope(data: Any = None, message: str = "OK", success: bool = True) -> dict:
    """Every response body is ``{success, message, data}``."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in data
        ]
    return {"success": success, "message": message, "data": data}
