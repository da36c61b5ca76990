import os

# point the app at an in-memory database before anything imports app.data.database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TAX_RATE"] = "18"
os.environ["SHIPPING_FEE"] = "0"
os.environ["RETURN_WINDOW_DAYS"] = "7"

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.data.database import init_db
from app.data.models import ProductModel, UserModel, VariantModel
from app.domain.entities import Coupon
from app.domain.errors import ConcurrencyConflict
from app.repos.coupon_repo import CouponRepo

NOW = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


class FakeLockService:
    """In-memory stand-in for the Redis lock, same fail-fast contract."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def hold(self, key, ttl=None):
        if key in self.held:
            raise ConcurrencyConflict("Another request is updating this resource, please retry")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield "test-owner"
        finally:
            self.held.discard(key)


class FakeNotifier:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send_order_notification(self, user_id, order_number, event, status=None):
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.sent.append((user_id, order_number, event, status))


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def lock_service():
    return FakeLockService()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def failing_notifier():
    return FakeNotifier(fail=True)


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def catalog(db):
    """Two users and a small catalogue; amounts in paise."""
    db.add_all([
        UserModel(id=1, name="Asha", tier="gold", total_orders=3),
        UserModel(id=2, name="Ravi", tier="bronze", total_orders=0),
    ])

    kurta = ProductModel(name="Cotton Kurta", category_id=1)
    kurta_m = VariantModel(sku="KURTA-M", size="M", price=100000, stock=10)
    kurta_l = VariantModel(sku="KURTA-L", size="L", price=100000, discount_price=80000, stock=3)
    kurta.variants = [kurta_m, kurta_l]

    saree = ProductModel(name="Silk Saree", category_id=2)
    saree_red = VariantModel(sku="SAREE-RED", color="red", price=300000, stock=5)
    saree.variants = [saree_red]

    retired = ProductModel(name="Old Stole", category_id=2, is_active=False)
    retired_one = VariantModel(sku="STOLE-1", price=20000, stock=50)
    retired.variants = [retired_one]

    db.add_all([kurta, saree, retired])
    db.commit()

    return SimpleNamespace(
        kurta=kurta.id,
        kurta_m=kurta_m.id,
        kurta_l=kurta_l.id,
        saree=saree.id,
        saree_red=saree_red.id,
        retired=retired.id,
        retired_one=retired_one.id,
    )


@pytest.fixture()
def make_coupon(db):
    def _make(**overrides):
        data = dict(
            code="SAVE10",
            name="Save 10",
            type="percentage",
            value=10,
            valid_from=NOW - timedelta(days=1),
            valid_until=NOW + timedelta(days=1),
        )
        data.update(overrides)
        coupon = CouponRepo(db).create_coupon(Coupon(**data))
        db.commit()
        return coupon

    return _make


@pytest.fixture()
def stock_of(session_factory):
    """Reads stock through a separate session."""

    def _read(variant_id):
        with session_factory() as session:
            return session.get(VariantModel, variant_id).stock

    return _read
