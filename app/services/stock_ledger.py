# app/services/stock_ledger.py
from collections import defaultdict
from typing import Dict, Iterable, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.data.models.product import VariantModel
from app.domain.errors import InsufficientStock, NotFoundError
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _totals(items: Iterable[Tuple[int, int]]) -> Dict[int, int]:
    totals = defaultdict(int)
    for variant_id, quantity in items:
        totals[variant_id] += quantity
    return dict(totals)


class StockLedger:
    """
    The only writer of variant stock.

    Runs inside the caller's transaction: whoever opened the session commits
    or rolls back, so a failed order insert also undoes the decrement.
    """

    def __init__(self, db: Session):
        self.db = db

    def reserve_and_commit(self, items: Iterable[Tuple[int, int]]) -> None:
        totals = _totals(items)
        if not totals:
            return

        # lock every row first, in id order to avoid deadlocks between checkouts
        variants = {
            v.id: v
            for v in self.db.execute(
                select(VariantModel)
                .where(VariantModel.id.in_(list(totals)))
                .order_by(VariantModel.id)
                .with_for_update()
            ).scalars()
        }

        # validate all lines before touching any of them
        for variant_id, quantity in sorted(totals.items()):
            variant = variants.get(variant_id)
            if variant is None:
                raise NotFoundError(f"Product variant {variant_id} not found")
            if variant.stock < quantity:
                raise InsufficientStock(
                    variant.stock,
                    f"Insufficient stock for variant {variant.sku or variant_id}: "
                    f"only {variant.stock} available",
                )

        for variant_id, quantity in sorted(totals.items()):
            result = self.db.execute(
                update(VariantModel)
                .where(VariantModel.id == variant_id, VariantModel.stock >= quantity)
                .values(stock=VariantModel.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # only reachable without row locks; the caller's rollback restores earlier lines
                raise InsufficientStock(variants[variant_id].stock)

        self._expire(variants.values())
        logger.info(f"Stock committed for variants {sorted(totals)}")

    def release(self, items: Iterable[Tuple[int, int]]) -> None:
        totals = _totals(items)
        for variant_id, quantity in sorted(totals.items()):
            self.db.execute(
                update(VariantModel)
                .where(VariantModel.id == variant_id)
                .values(stock=VariantModel.stock + quantity)
                .execution_options(synchronize_session=False)
            )

        self._expire(
            v for v in (self.db.get(VariantModel, vid) for vid in totals) if v is not None
        )
        logger.info(f"Stock released for variants {sorted(totals)}")

    def _expire(self, variants):
        for variant in variants:
            self.db.expire(variant)
