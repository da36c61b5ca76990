# app/api/routers/health.py
from fastapi import APIRouter

from app.domain.schemas import envelope

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return envelope({"status": "ok"}, "Service is healthy")
