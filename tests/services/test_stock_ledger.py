"""Tests for the stock ledger's all-or-nothing reservation."""

import pytest
from app.data.models import VariantModel
from app.domain.errors import InsufficientStock, NotFoundError
from app.services.stock_ledger import StockLedger


class TestReserveAndCommit:
    def test_decrements_every_line(self, db, catalog, stock_of):
        StockLedger(db).reserve_and_commit([(catalog.kurta_m, 2), (catalog.saree_red, 5)])
        db.commit()

        assert stock_of(catalog.kurta_m) == 8
        assert stock_of(catalog.saree_red) == 0

    def test_same_variant_is_summed(self, db, catalog, stock_of):
        with pytest.raises(InsufficientStock) as exc:
            StockLedger(db).reserve_and_commit([(catalog.kurta_l, 2), (catalog.kurta_l, 2)])

        assert exc.value.available == 3
        db.rollback()
        assert stock_of(catalog.kurta_l) == 3

    def test_one_short_line_changes_nothing(self, db, catalog, stock_of):
        with pytest.raises(InsufficientStock) as exc:
            StockLedger(db).reserve_and_commit([(catalog.kurta_m, 1), (catalog.kurta_l, 4)])

        assert "only 3 available" in exc.value.message
        db.rollback()
        assert stock_of(catalog.kurta_m) == 10
        assert stock_of(catalog.kurta_l) == 3

    def test_unknown_variant(self, db, catalog):
        with pytest.raises(NotFoundError):
            StockLedger(db).reserve_and_commit([(999, 1)])

    def test_nothing_to_reserve(self, db, catalog, stock_of):
        StockLedger(db).reserve_and_commit([])
        assert stock_of(catalog.kurta_m) == 10


class TestRelease:
    def test_puts_stock_back(self, db, catalog, stock_of):
        ledger = StockLedger(db)
        ledger.reserve_and_commit([(catalog.kurta_m, 4)])
        db.commit()

        ledger.release([(catalog.kurta_m, 4)])
        db.commit()
        assert stock_of(catalog.kurta_m) == 10

    def test_session_sees_fresh_stock(self, db, catalog):
        variant = db.get(VariantModel, catalog.kurta_m)
        StockLedger(db).reserve_and_commit([(catalog.kurta_m, 3)])
        assert variant.stock == 7
