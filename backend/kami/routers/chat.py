from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from .. import chat
from ..deps import current_user, generator_dependency, store_dependency
from ..generator import TextGenerator
from ..models import ChatRequest, User
from ..storage import EntityStore

router = APIRouter(tags=["chat"])


@router.post("/chat")
def converse(
    payload: ChatRequest,
    user: User = Depends(current_user),
    store: EntityStore = Depends(store_dependency),
    generator: TextGenerator = Depends(generator_dependency),
) -> dict:
    if not payload.god_id or not payload.message or not payload.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="godId and message are required")
    outcome = chat.converse(store, generator, user, payload.god_id, payload.message)
    return outcome.to_json()
