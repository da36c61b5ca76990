"""Tests for checkout and the order lifecycle use cases."""

from datetime import timedelta

import pytest
from app.data.models import OrderModel, VariantModel
from app.domain.errors import (
    ConcurrencyConflict,
    CouponIneligible,
    InsufficientStock,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from app.repos.coupon_repo import CouponRepo
from app.services.cart_service import CartService
from app.services.order_service import OrderService

ADDRESS = {"name": "Asha", "line1": "12 MG Road", "city": "Pune", "pincode": "411001"}


@pytest.fixture()
def carts(db, lock_service, clock, catalog):
    return CartService(db, lock_service, clock=clock)


@pytest.fixture()
def service(db, lock_service, notifier, clock, catalog):
    return OrderService(db, lock_service, notification_service=notifier, clock=clock)


def _fill_cart(carts, catalog):
    carts.add_item(1, catalog.kurta, catalog.kurta_m, 2)
    carts.add_item(1, catalog.saree, catalog.saree_red, 1)


def _place(service, carts, catalog):
    _fill_cart(carts, catalog)
    return service.create_order_from_cart(1, ADDRESS, "upi")


class TestCheckout:
    def test_places_order(self, service, carts, catalog, stock_of, notifier):
        order = _place(service, carts, catalog)

        assert order.id is not None
        assert order.status == "placed"
        assert order.subtotal == 500000
        assert order.tax_amount == 90000
        assert order.total == 590000
        assert order.shipping_address == ADDRESS
        assert order.order_number.startswith("AMB-")

        assert stock_of(catalog.kurta_m) == 8
        assert stock_of(catalog.saree_red) == 4
        assert notifier.sent == [(1, order.order_number, "order_placed", "placed")]

    def test_cart_is_emptied(self, service, carts, catalog):
        _place(service, carts, catalog)
        cart = carts.get_cart(1)

        assert cart.lines == []
        assert cart.total == 0

    def test_saved_lines_stay_in_cart(self, service, carts, catalog):
        cart = carts.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        carts.add_item(1, catalog.saree, catalog.saree_red, 1)
        carts.save_for_later(1, cart.lines[0].id)

        order = service.create_order_from_cart(1, ADDRESS, "cod")

        assert [i.variant_id for i in order.items] == [catalog.saree_red]
        assert [line.variant_id for line in carts.get_cart(1).saved_lines] == [catalog.kurta_m]

    def test_empty_cart(self, service, carts):
        carts.get_cart(1)
        with pytest.raises(ValidationError):
            service.create_order_from_cart(1, ADDRESS, "upi")

    def test_order_persisted_with_history(self, service, carts, catalog, session_factory):
        order = _place(service, carts, catalog)

        with session_factory() as session:
            stored = OrderService(session, None).get_order(order.id, 1)
        assert stored.order_number == order.order_number
        assert [e.status for e in stored.status_history] == ["placed"]
        assert len(stored.items) == 2

    def test_stock_failure_rolls_everything_back(self, service, carts, catalog, db, stock_of):
        carts.add_item(1, catalog.kurta, catalog.kurta_m, 2)
        carts.add_item(1, catalog.kurta, catalog.kurta_l, 3)

        db.get(VariantModel, catalog.kurta_l).stock = 1
        db.commit()

        with pytest.raises(InsufficientStock):
            service.create_order_from_cart(1, ADDRESS, "upi")

        assert stock_of(catalog.kurta_m) == 10
        assert db.query(OrderModel).count() == 0
        assert carts.get_cart(1).total_items == 5

    def test_cart_lock_held(self, service, carts, catalog, lock_service):
        _fill_cart(carts, catalog)
        lock_service.held.add("cart:1:lock")
        with pytest.raises(ConcurrencyConflict):
            service.create_order_from_cart(1, ADDRESS, "upi")

    def test_notification_failure_does_not_fail_order(
        self, db, lock_service, failing_notifier, clock, carts, catalog, stock_of
    ):
        service = OrderService(db, lock_service, notification_service=failing_notifier, clock=clock)
        order = _place(service, carts, catalog)

        assert order.status == "placed"
        assert stock_of(catalog.kurta_m) == 8


class TestCheckoutWithCoupon:
    def test_records_usage(self, service, carts, catalog, make_coupon, session_factory):
        make_coupon(code="SAVE10", value=10, usage_limit=5)
        _fill_cart(carts, catalog)
        carts.apply_coupon(1, "SAVE10")

        order = service.create_order_from_cart(1, ADDRESS, "upi")
        assert order.discount.amount == 50000
        assert order.discount.code == "SAVE10"
        assert order.total == 500000 + 90000 - 50000

        with session_factory() as session:
            coupon = CouponRepo(session).get_by_code("SAVE10")
        assert coupon.used_count == 1
        assert coupon.total_discount_given == 50000
        assert [(u.user_id, u.order_id) for u in coupon.usage_history] == [(1, order.id)]

    def test_discount_cleared_from_cart(self, service, carts, catalog, make_coupon):
        make_coupon(code="SAVE10", value=10)
        _fill_cart(carts, catalog)
        carts.apply_coupon(1, "SAVE10")
        service.create_order_from_cart(1, ADDRESS, "upi")

        assert carts.get_cart(1).discount.coupon_id is None

    def test_expired_coupon_blocks_checkout(self, service, carts, catalog, make_coupon, clock, stock_of):
        make_coupon(code="SAVE10", value=10)
        _fill_cart(carts, catalog)
        carts.apply_coupon(1, "SAVE10")

        clock.advance(days=2)
        with pytest.raises(CouponIneligible):
            service.create_order_from_cart(1, ADDRESS, "upi")
        assert stock_of(catalog.kurta_m) == 10

    def test_per_user_limit_holds_across_orders(self, service, carts, catalog, make_coupon):
        make_coupon(code="ONCE", type="fixed", value=1000, usage_limit_per_user=1)
        _fill_cart(carts, catalog)
        carts.apply_coupon(1, "ONCE")
        service.create_order_from_cart(1, ADDRESS, "upi")

        carts.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        with pytest.raises(CouponIneligible):
            carts.apply_coupon(1, "ONCE")


class TestQueries:
    def test_foreign_order_is_not_found(self, service, carts, catalog):
        order = _place(service, carts, catalog)
        with pytest.raises(NotFoundError):
            service.get_order(order.id, user_id=2)

    def test_track_by_number(self, service, carts, catalog):
        order = _place(service, carts, catalog)
        assert service.get_order_by_number(order.order_number.lower(), user_id=1).id == order.id

    def test_track_foreign_order_is_not_found(self, service, carts, catalog):
        order = _place(service, carts, catalog)
        with pytest.raises(NotFoundError):
            service.get_order_by_number(order.order_number, user_id=2)

    def test_list_newest_first(self, service, carts, catalog, clock):
        first = _place(service, carts, catalog)
        clock.advance(hours=1)
        second = _place(service, carts, catalog)

        assert [o.id for o in service.list_orders(1)] == [second.id, first.id]
        assert service.list_orders(2) == []


class TestCancel:
    def test_processing_order_releases_stock(self, service, carts, catalog, stock_of, notifier):
        order = _place(service, carts, catalog)
        service.update_status(order.id, "processing")

        cancelled = service.cancel_order(order.id, 1, "ordered by mistake", actor="user:1")

        assert cancelled.status == "cancelled"
        assert cancelled.cancellation_reason == "ordered by mistake"
        assert stock_of(catalog.kurta_m) == 10
        assert stock_of(catalog.saree_red) == 5
        assert notifier.sent[-1][2] == "order_cancelled"

    def test_second_cancel_does_not_release_again(self, service, carts, catalog, stock_of):
        order = _place(service, carts, catalog)
        service.cancel_order(order.id, 1, "first")

        with pytest.raises(InvalidTransition):
            service.cancel_order(order.id, 1, "second")
        assert stock_of(catalog.kurta_m) == 10

    def test_shipped_order_cannot_be_cancelled(self, service, carts, catalog, stock_of):
        order = _place(service, carts, catalog)
        service.update_status(order.id, "shipped")

        with pytest.raises(InvalidTransition):
            service.cancel_order(order.id, 1, "too late")
        assert stock_of(catalog.kurta_m) == 8

    def test_other_users_order(self, service, carts, catalog):
        order = _place(service, carts, catalog)
        with pytest.raises(NotFoundError):
            service.cancel_order(order.id, 2, "not mine")

    def test_operator_cancel_goes_through_release(self, service, carts, catalog, stock_of):
        order = _place(service, carts, catalog)
        cancelled = service.update_status(order.id, "cancelled", note="Out of stock at warehouse", actor="ops")

        assert cancelled.status == "cancelled"
        assert stock_of(catalog.kurta_m) == 10


class TestStatusAndReturns:
    def test_delivery_then_return_then_refund(self, service, carts, catalog, clock, session_factory):
        order = _place(service, carts, catalog)
        service.update_status(order.id, "shipped", note="AWB 123", actor="carrier")
        service.update_status(order.id, "delivered")

        clock.advance(days=3)
        returned = service.return_order(order.id, 1, "wrong size")
        assert returned.status == "returned"

        refunded = service.update_status(order.id, "refunded")
        assert refunded.payment.status == "refunded"

        with session_factory() as session:
            stored = OrderService(session, None).get_order(order.id)
        assert [e.status for e in stored.status_history] == [
            "placed", "shipped", "delivered", "returned", "refunded",
        ]
        assert stored.status_history[1].actor == "carrier"
        assert stored.delivered_at is not None

    def test_return_window(self, service, carts, catalog, clock):
        order = _place(service, carts, catalog)
        service.update_status(order.id, "delivered")

        clock.advance(days=8)
        with pytest.raises(InvalidTransition) as exc:
            service.return_order(order.id, 1, "too late")
        assert "expired" in exc.value.message

    def test_illegal_operator_transition(self, service, carts, catalog):
        order = _place(service, carts, catalog)
        service.update_status(order.id, "delivered")
        with pytest.raises(InvalidTransition):
            service.update_status(order.id, "processing")

    def test_version_guards_lost_updates(self, service, carts, catalog, db):
        order = _place(service, carts, catalog)
        stale = service.get_order(order.id)
        service.update_status(order.id, "confirmed")

        with pytest.raises(ConcurrencyConflict):
            service.repo.save_order(stale)
        db.rollback()


class TestPayment:
    def test_payment_update_does_not_notify(self, service, carts, catalog, notifier):
        order = _place(service, carts, catalog)
        sent_before = len(notifier.sent)

        paid = service.record_payment(order.id, "completed", reference="pay_42")

        assert paid.payment.status == "completed"
        assert paid.payment.paid_at is not None
        assert paid.status == "placed"
        assert len(notifier.sent) == sent_before
