from sqlalchemy.orm import Session
from app.data.models.user import UserModel
from app.domain.entities import Customer


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_customer(self, user_id: int) -> Customer | None:
        user = self.get_user(user_id)
        if not user:
            return None
        return Customer(id=user.id, tier=user.tier, total_orders=user.total_orders or 0)

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
