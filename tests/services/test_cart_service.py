"""Tests for CartService against an in-memory database."""

from datetime import timedelta

import pytest
from app.data.models import VariantModel
from app.domain.errors import (
    ConcurrencyConflict,
    CouponIneligible,
    InsufficientStock,
    NotFoundError,
    ValidationError,
)
from app.services.cart_service import CartService
from app.tasks.expire import expire_idle_carts


@pytest.fixture()
def service(db, lock_service, clock, catalog):
    return CartService(db, lock_service, clock=clock)


class TestGetCart:
    def test_created_lazily(self, service):
        cart = service.get_cart(1)

        assert cart.id is not None
        assert cart.status == "ACTIVE"
        assert cart.lines == []
        assert cart.total == 0

    def test_same_cart_on_second_read(self, service):
        assert service.get_cart(1).id == service.get_cart(1).id

    def test_unknown_user(self, service):
        with pytest.raises(NotFoundError):
            service.get_cart(999)

    def test_first_read_ignores_held_lock(self, service, lock_service):
        lock_service.held.add("cart:1:lock")

        cart = service.get_cart(1)

        assert cart.id is not None
        assert lock_service.acquired == []

    def test_expired_cart_read_while_locked(self, service, catalog, db, lock_service, clock):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        expire_idle_carts(db, now=clock.now + timedelta(days=31))
        lock_service.held.add("cart:1:lock")

        cart = service.get_cart(1)

        assert cart.status == "ACTIVE"
        assert cart.lines == []
        assert cart.total == 0


class TestItems:
    def test_add_item(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 2)

        assert cart.total_items == 2
        assert cart.subtotal == 200000
        assert cart.tax_amount == 36000
        assert cart.total == 236000

    def test_add_uses_discount_price(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_l, 1)
        assert cart.subtotal == 80000

    def test_add_twice_merges_and_persists(self, service, catalog):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.add_item(1, catalog.kurta, catalog.kurta_m, 2)

        cart = service.get_cart(1)
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_more_than_stock(self, service, catalog):
        with pytest.raises(InsufficientStock) as exc:
            service.add_item(1, catalog.kurta, catalog.kurta_l, 5)

        assert "3" in exc.value.message
        assert service.get_cart(1).lines == []

    def test_variant_must_belong_to_product(self, service, catalog):
        with pytest.raises(NotFoundError):
            service.add_item(1, catalog.saree, catalog.kurta_m, 1)

    def test_inactive_product(self, service, catalog):
        with pytest.raises(NotFoundError):
            service.add_item(1, catalog.retired, catalog.retired_one, 1)

    def test_update_and_remove(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        line_id = cart.lines[0].id

        cart = service.update_item(1, line_id, 4)
        assert cart.total_items == 4

        cart = service.remove_item(1, line_id)
        assert cart.lines == []
        assert cart.total == 0

    def test_update_above_live_stock(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        with pytest.raises(InsufficientStock):
            service.update_item(1, cart.lines[0].id, 11)

    def test_update_unknown_line(self, service):
        with pytest.raises(NotFoundError):
            service.update_item(1, "missing", 1)

    def test_clear(self, service, catalog):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.add_item(1, catalog.saree, catalog.saree_red, 1)

        cart = service.clear_cart(1)
        assert cart.lines == []
        assert service.get_cart(1).lines == []

    def test_version_increases_per_mutation(self, service, catalog):
        first = service.add_item(1, catalog.kurta, catalog.kurta_m, 1).version
        second = service.add_item(1, catalog.kurta, catalog.kurta_m, 1).version
        assert second == first + 1

    def test_mutation_extends_expiry(self, service, catalog, clock):
        service.get_cart(1)
        clock.advance(days=5)
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        assert cart.expires_at == clock.now + timedelta(days=30)


class TestSaveForLater:
    def test_round_trip(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.add_item(1, catalog.saree, catalog.saree_red, 1)
        line_id = cart.lines[0].id

        cart = service.save_for_later(1, line_id)
        assert cart.subtotal == 300000
        assert [line.id for line in cart.saved_lines] == [line_id]

        cart = service.move_to_cart(1, line_id)
        assert cart.subtotal == 400000
        assert cart.saved_lines == []

    def test_add_again_after_saving_restores_line(self, service, catalog):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.save_for_later(1, cart.lines[0].id)

        service.add_item(1, catalog.kurta, catalog.kurta_m, 2)

        cart = service.get_cart(1)
        assert cart.saved_lines == []
        assert len(cart.active_lines) == 1
        assert cart.total_items == 3
        assert cart.subtotal == 300000

    def test_move_back_checks_stock(self, service, catalog, db):
        cart = service.add_item(1, catalog.kurta, catalog.kurta_l, 3)
        line_id = cart.lines[0].id
        service.save_for_later(1, line_id)

        db.get(VariantModel, catalog.kurta_l).stock = 1
        db.commit()

        with pytest.raises(InsufficientStock):
            service.move_to_cart(1, line_id)


class TestCoupons:
    def test_apply_case_insensitive(self, service, catalog, make_coupon):
        make_coupon(code="SAVE10", value=10)
        service.add_item(1, catalog.kurta, catalog.kurta_m, 2)

        cart, amount = service.apply_coupon(1, "  save10 ")
        assert amount == 20000
        assert cart.discount.code == "SAVE10"
        assert cart.total == 200000 + 36000 - 20000

    def test_apply_on_empty_cart(self, service, make_coupon):
        make_coupon()
        with pytest.raises(ValidationError):
            service.apply_coupon(1, "SAVE10")

    def test_unknown_code(self, service, catalog):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        with pytest.raises(NotFoundError):
            service.apply_coupon(1, "NOPE")

    def test_ineligible_leaves_cart_untouched(self, service, catalog, make_coupon):
        make_coupon(code="BIG", type="fixed", value=50000, minimum_amount=500000)
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)

        with pytest.raises(CouponIneligible) as exc:
            service.apply_coupon(1, "BIG")
        assert "Minimum amount" in exc.value.reason
        assert service.get_cart(1).discount.amount == 0

    def test_coupon_repriced_after_item_change(self, service, catalog, make_coupon):
        make_coupon(code="SAVE10", value=10)
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.apply_coupon(1, "SAVE10")

        cart = service.update_item(1, cart.lines[0].id, 3)
        assert cart.discount.amount == 30000

    def test_coupon_dropped_when_no_longer_eligible(self, service, catalog, make_coupon):
        make_coupon(code="MIN2", type="fixed", value=10000, minimum_amount=150000)
        cart = service.add_item(1, catalog.kurta, catalog.kurta_m, 2)
        service.apply_coupon(1, "MIN2")

        cart = service.update_item(1, cart.lines[0].id, 1)
        assert cart.discount.coupon_id is None
        assert cart.discount.amount == 0

    def test_remove_coupon_is_idempotent(self, service, catalog, make_coupon):
        make_coupon()
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        service.apply_coupon(1, "SAVE10")

        first = service.remove_coupon(1)
        second = service.remove_coupon(1)
        assert first.discount == second.discount
        assert first.total == second.total


class TestLocking:
    def test_held_lock_fails_fast(self, service, catalog, lock_service):
        lock_service.held.add("cart:1:lock")
        with pytest.raises(ConcurrencyConflict):
            service.add_item(1, catalog.kurta, catalog.kurta_m, 1)

    def test_lock_taken_per_user(self, service, catalog, lock_service):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        assert lock_service.acquired == ["cart:1:lock"]
        assert lock_service.held == set()


class TestExpiry:
    def test_idle_cart_expires_and_reopens_empty(self, service, catalog, session_factory, lock_service, clock):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)

        with session_factory() as session:
            assert expire_idle_carts(session, now=clock.now + timedelta(days=31)) == 1

        with session_factory() as session:
            clock.advance(days=31)
            cart = CartService(session, lock_service, clock=clock).get_cart(1)
            assert cart.status == "ACTIVE"
            assert cart.lines == []

    def test_recent_cart_is_kept(self, service, catalog, session_factory, clock):
        service.add_item(1, catalog.kurta, catalog.kurta_m, 1)
        with session_factory() as session:
            assert expire_idle_carts(session, now=clock.now + timedelta(days=1)) == 0
