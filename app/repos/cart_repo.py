# app/repos/cart_repo.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.entities import Cart, CartLine, Discount
from app.domain.errors import ConcurrencyConflict
from app.utils.clock import ensure_utc


def _line_to_domain(item: CartItemModel) -> CartLine:
    return CartLine(
        id=item.id,
        product_id=item.product_id,
        variant_id=item.variant_id,
        category_id=item.category_id,
        quantity=item.quantity,
        price=item.price,
        discount_price=item.discount_price,
        total_price=item.total_price,
        saved_for_later=item.saved_for_later,
        added_at=ensure_utc(item.added_at),
    )


def _cart_to_domain(model: CartModel) -> Cart:
    return Cart(
        id=model.id,
        user_id=model.user_id,
        lines=[_line_to_domain(i) for i in model.items],
        discount=Discount(
            amount=model.discount_amount,
            coupon_id=model.discount_coupon_id,
            code=model.discount_code,
            type=model.discount_type,
        ),
        tax_rate=Decimal(model.tax_rate),
        tax_amount=model.tax_amount,
        shipping_fee=model.shipping_fee,
        shipping_amount=model.shipping_amount,
        shipping_method=model.shipping_method,
        subtotal=model.subtotal,
        total_items=model.total_items,
        total=model.total,
        currency=model.currency,
        status=model.status,
        version=model.version,
        expires_at=ensure_utc(model.expires_at),
        updated_at=ensure_utc(model.updated_at),
    )


def _scalar_fields(cart: Cart) -> dict:
    return {
        "status": cart.status,
        "currency": cart.currency,
        "discount_amount": cart.discount.amount,
        "discount_coupon_id": cart.discount.coupon_id,
        "discount_code": cart.discount.code,
        "discount_type": cart.discount.type,
        "tax_rate": cart.tax_rate,
        "tax_amount": cart.tax_amount,
        "shipping_fee": cart.shipping_fee,
        "shipping_amount": cart.shipping_amount,
        "shipping_method": cart.shipping_method,
        "subtotal": cart.subtotal,
        "total_items": cart.total_items,
        "total": cart.total,
        "expires_at": cart.expires_at,
        "updated_at": cart.updated_at,
    }


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> Cart | None:
        model = self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()
        return _cart_to_domain(model) if model else None

    def create_cart(self, cart: Cart) -> Cart:
        model = CartModel(user_id=cart.user_id, version=1, **_scalar_fields(cart))
        self.db.add(model)
        self.db.flush()
        cart.id = model.id
        cart.version = model.version
        return cart

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # UPDATE carts SET ... WHERE id = :id AND version = :old_version
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def save_cart(self, cart: Cart) -> Cart:
        rowcount = self.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={**_scalar_fields(cart), "version": cart.version + 1},
        )
        if rowcount == 0:
            raise ConcurrencyConflict("Cart was modified by another request")
        cart.version += 1

        model = self.db.get(CartModel, cart.id)
        self._sync_items(model, cart.lines)
        self.db.flush()
        return cart

    def _sync_items(self, model: CartModel, lines):
        existing = {item.id: item for item in model.items}
        wanted = {line.id for line in lines}

        for item in list(model.items):
            if item.id not in wanted:
                model.items.remove(item)

        for position, line in enumerate(lines):
            item = existing.get(line.id)
            if item is None:
                item = CartItemModel(id=line.id, cart_id=model.id)
                model.items.append(item)
            item.product_id = line.product_id
            item.variant_id = line.variant_id
            item.category_id = line.category_id
            item.position = position
            item.quantity = line.quantity
            item.price = line.price
            item.discount_price = line.discount_price
            item.total_price = line.total_price
            item.saved_for_later = line.saved_for_later
            item.added_at = line.added_at

    def expire_idle_carts(self, now: datetime) -> int:
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.status == "ACTIVE", CartModel.expires_at < now)
            .values(status="EXPIRED", version=CartModel.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
