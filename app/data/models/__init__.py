# every model is imported here so SQLAlchemy registers it on Base.metadata

from app.data.models.user import UserModel
from app.data.models.product import ProductModel, VariantModel
from app.data.models.coupon import CouponModel, CouponUsageModel
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel, OrderStatusEntryModel

__all__ = [
    "UserModel",
    "ProductModel",
    "VariantModel",
    "CouponModel",
    "CouponUsageModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusEntryModel",
]
