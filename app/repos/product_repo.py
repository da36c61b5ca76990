# app/repos/product_repo.py
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel, VariantModel
from app.domain.entities import VariantInfo


def _to_info(variant: VariantModel, product: ProductModel) -> VariantInfo:
    return VariantInfo(
        id=variant.id,
        product_id=variant.product_id,
        price=variant.price,
        discount_price=variant.discount_price,
        stock=variant.stock,
        category_id=product.category_id,
        sku=variant.sku,
        name=product.name,
        is_active=bool(variant.is_active and product.is_active),
    )


class ProductRepo:
    """Read side of the product store. Stock is only written by the stock ledger."""

    def __init__(self, db: Session):
        self.db = db

    def get_variant(self, variant_id: int) -> VariantInfo | None:
        row = self.db.execute(
            select(VariantModel, ProductModel)
            .join(ProductModel, ProductModel.id == VariantModel.product_id)
            .where(VariantModel.id == variant_id)
        ).first()
        return _to_info(*row) if row else None

    def get_variants(self, variant_ids: Iterable[int]) -> Dict[int, VariantInfo]:
        ids = set(variant_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(VariantModel, ProductModel)
            .join(ProductModel, ProductModel.id == VariantModel.product_id)
            .where(VariantModel.id.in_(ids))
        ).all()
        return {variant.id: _to_info(variant, product) for variant, product in rows}

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product
