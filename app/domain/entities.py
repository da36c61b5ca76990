# app/domain/entities.py
"""
Plain in-memory shapes the pricing core works on.

Repositories build these from SQLAlchemy rows and write them back, so the
coupon evaluator, cart aggregator and order state machine never touch a
session.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import uuid4


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"


class OrderStatus(str, Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PACKED = "packed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


@dataclass
class Customer:
    id: int
    tier: Optional[str] = None
    total_orders: int = 0


@dataclass
class VariantInfo:
    """Read-only view of a purchasable variant from the product store."""

    id: int
    product_id: int
    price: int
    stock: int
    discount_price: Optional[int] = None
    category_id: Optional[int] = None
    sku: Optional[str] = None
    name: str = ""
    is_active: bool = True


@dataclass
class CartLine:
    product_id: int
    variant_id: int
    quantity: int
    price: int
    discount_price: Optional[int] = None
    category_id: Optional[int] = None
    total_price: int = 0
    saved_for_later: bool = False
    added_at: Optional[datetime] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def unit_price(self) -> int:
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def key(self):
        return (self.product_id, self.variant_id)


@dataclass
class Discount:
    amount: int = 0
    coupon_id: Optional[int] = None
    code: Optional[str] = None
    type: Optional[str] = None


@dataclass
class Cart:
    user_id: int
    lines: List[CartLine] = field(default_factory=list)
    discount: Discount = field(default_factory=Discount)
    tax_rate: Decimal = Decimal("0")
    tax_amount: int = 0
    shipping_fee: int = 0
    shipping_amount: int = 0
    shipping_method: Optional[str] = None
    subtotal: int = 0
    total_items: int = 0
    total: int = 0
    currency: str = "INR"
    status: str = "ACTIVE"
    version: int = 1
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def active_lines(self) -> List[CartLine]:
        return [line for line in self.lines if not line.saved_for_later]

    @property
    def saved_lines(self) -> List[CartLine]:
        return [line for line in self.lines if line.saved_for_later]

    def find_line(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.id == line_id), None)


@dataclass
class CouponUsage:
    user_id: int
    order_id: Optional[int]
    discount_amount: int
    used_at: datetime


@dataclass
class Coupon:
    code: str
    type: str
    value: int
    valid_from: datetime
    valid_until: datetime
    name: str = ""
    description: Optional[str] = None
    usage_limit: Optional[int] = None
    usage_limit_per_user: int = 1
    used_count: int = 0
    minimum_amount: int = 0
    maximum_amount: Optional[int] = None
    maximum_discount: Optional[int] = None
    applicable_products: List[int] = field(default_factory=list)
    applicable_categories: List[int] = field(default_factory=list)
    excluded_products: List[int] = field(default_factory=list)
    excluded_categories: List[int] = field(default_factory=list)
    applicable_users: List[int] = field(default_factory=list)
    user_tiers: List[str] = field(default_factory=list)
    new_users_only: bool = False
    buy_quantity: Optional[int] = None
    get_quantity: Optional[int] = None
    get_product_discount: Optional[int] = None
    is_active: bool = True
    total_discount_given: int = 0
    usage_history: List[CouponUsage] = field(default_factory=list)
    id: Optional[int] = None

    def uses_by(self, user_id: int) -> int:
        return sum(1 for usage in self.usage_history if usage.user_id == user_id)


@dataclass(frozen=True)
class OrderItem:
    product_id: int
    variant_id: int
    name: str
    quantity: int
    price: int
    total_price: int
    discount_price: Optional[int] = None
    sku: Optional[str] = None


@dataclass(frozen=True)
class StatusEntry:
    status: str
    timestamp: datetime
    note: Optional[str] = None
    actor: Optional[str] = None


@dataclass
class Payment:
    method: str
    amount: int
    status: str = PaymentStatus.PENDING.value
    reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


@dataclass
class Order:
    order_number: str
    user_id: int
    items: tuple
    subtotal: int
    discount: Discount
    tax_rate: Decimal
    tax_amount: int
    shipping_amount: int
    total: int
    shipping_address: dict
    payment: Payment
    placed_at: datetime
    currency: str = "INR"
    status: str = OrderStatus.PLACED.value
    shipping_method: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    return_reason: Optional[str] = None
    status_history: List[StatusEntry] = field(default_factory=list)
    version: int = 1
    id: Optional[int] = None
