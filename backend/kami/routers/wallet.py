from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import current_user
from ..models import User

router = APIRouter(tags=["wallet"])


@router.get("/wallet")
def wallet(user: User = Depends(current_user)) -> dict:
    return {"balance": user.saisen_balance}
