from sqlalchemy import Column, Integer, String
from app.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    # bronze, silver, gold, platinum
    tier = Column(String(20), nullable=True)
    total_orders = Column(Integer, nullable=False, default=0)
