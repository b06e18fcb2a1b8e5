from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import sessions
from .generator import TextGenerator, get_generator
from .models import User
from .storage import EntityStore, get_store

_bearer_scheme = HTTPBearer(auto_error=False)


def store_dependency() -> EntityStore:
    return get_store()


def generator_dependency() -> TextGenerator:
    return get_generator()


def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer_scheme),
) -> Optional[str]:
    """Return the token from `Authorization: Bearer <token>`, if any."""

    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials.strip()


def require_token(token: Optional[str] = Depends(bearer_token)) -> str:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return token


def current_user(
    token: str = Depends(require_token),
    store: EntityStore = Depends(store_dependency),
) -> User:
    return sessions.resolve(store, token)
