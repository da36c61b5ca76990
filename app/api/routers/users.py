from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.data.database import get_db
from app.services.user_service import UserService
from app.domain.schemas import UserCreate, envelope

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    service = UserService(db)
    return envelope(service.create_user(payload), "User created successfully")


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    service = UserService(db)
    return envelope(service.get_user(user_id), "User retrieved successfully")
