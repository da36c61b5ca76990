# app/data/seed.py
from datetime import timedelta

from app.data.database import SessionLocal, init_db
from app.data.models import CouponModel, ProductModel, UserModel, VariantModel
from app.repos.product_repo import ProductRepo
from app.utils.clock import utcnow
from app.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

# amounts in paise
PRODUCTS = [
    {
        "name": "Cotton Kurta",
        "category_id": 1,
        "variants": [
            {"sku": "KURTA-M-BLU", "size": "M", "color": "blue", "price": 149900, "discount_price": 119900, "stock": 25},
            {"sku": "KURTA-L-BLU", "size": "L", "color": "blue", "price": 149900, "discount_price": 119900, "stock": 10},
        ],
    },
    {
        "name": "Silk Saree",
        "category_id": 2,
        "variants": [
            {"sku": "SAREE-RED", "color": "red", "price": 599900, "stock": 5},
        ],
    },
    {
        "name": "Leather Sandals",
        "category_id": 3,
        "variants": [
            {"sku": "SANDAL-8", "size": "8", "price": 89900, "stock": 40},
            {"sku": "SANDAL-9", "size": "9", "price": 89900, "stock": 0},
        ],
    },
]

USERS = [
    {"id": 1, "name": "Asha", "tier": "gold", "total_orders": 4},
    {"id": 2, "name": "Ravi", "tier": "bronze", "total_orders": 0},
]


def _coupons(now):
    return [
        CouponModel(
            code="WELCOME10",
            name="Welcome offer",
            description="10% off your first order",
            type="percentage",
            value=10,
            usage_limit=1000,
            usage_limit_per_user=1,
            minimum_amount=100000,
            maximum_discount=50000,
            new_users_only=True,
            valid_from=now,
            valid_until=now + timedelta(days=30),
        ),
        CouponModel(
            code="NAVRATRI25",
            name="Navratri sale",
            description="Flat 500 off",
            type="fixed",
            value=50000,
            usage_limit=500,
            usage_limit_per_user=2,
            minimum_amount=200000,
            valid_from=now,
            valid_until=now + timedelta(days=10),
        ),
    ]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            logger.info("Database already seeded")
            return

        products = ProductRepo(db)
        for entry in PRODUCTS:
            product = ProductModel(name=entry["name"], category_id=entry["category_id"])
            product.variants = [VariantModel(**variant) for variant in entry["variants"]]
            products.create_product(product)

        db.add_all(UserModel(**user) for user in USERS)
        db.add_all(_coupons(utcnow()))
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products, {len(USERS)} users and 2 coupons")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    seed()
