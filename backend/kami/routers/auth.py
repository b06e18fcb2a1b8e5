from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from .. import sessions
from ..deps import require_token, store_dependency
from ..models import LoginRequest, RegisterRequest, VerifyRequest
from ..storage import EntityStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
def login(payload: LoginRequest, store: EntityStore = Depends(store_dependency)) -> dict:
    user, token = sessions.login(store, payload.email, payload.password)
    return {"message": "Logged in", "user": sessions.public_user(user), "token": token}


@router.post("/register")
def register(payload: RegisterRequest, store: EntityStore = Depends(store_dependency)) -> dict:
    user = sessions.register(store, payload.username, payload.email, payload.password)
    return {"message": "Account created", "user": sessions.public_user(user)}


@router.post("/verify")
def verify(payload: VerifyRequest, store: EntityStore = Depends(store_dependency)) -> dict:
    if not payload.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    user = sessions.resolve(store, payload.token)
    return {"message": "Token is valid", "user": sessions.public_user(user)}


@router.post("/logout")
def logout(token: str = Depends(require_token), store: EntityStore = Depends(store_dependency)) -> dict:
    sessions.logout(store, token)
    return {"success": True}
