"""Tests for the idle cart expiry job."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from app.data.models import CartModel
from app.services.cart_service import CartService
from app.tasks import expire


class TestExpireIdleCarts:
    def test_marks_only_idle_carts(self, db, lock_service, clock, catalog, session_factory):
        service = CartService(db, lock_service, clock=clock)
        service.get_cart(1)
        clock.advance(days=20)
        service.get_cart(2)

        with session_factory() as session:
            assert expire.expire_idle_carts(session, now=clock.now + timedelta(days=15)) == 1

        with session_factory() as session:
            statuses = {c.user_id: c.status for c in session.query(CartModel)}
        assert statuses == {1: "EXPIRED", 2: "ACTIVE"}

    def test_task_uses_its_own_session(self, session_factory, catalog, db, lock_service, clock):
        # a cart touched long ago is idle by any real clock
        clock.now = datetime(2000, 1, 1, tzinfo=timezone.utc)
        CartService(db, lock_service, clock=clock).get_cart(1)

        with patch.object(expire, "SessionLocal", session_factory):
            assert expire.expire_carts_task.run() == 1
