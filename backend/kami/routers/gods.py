from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from .. import chat, gods, ledger, sessions
from ..deps import bearer_token, current_user, store_dependency
from ..models import CommunityPostRequest, GodCreate, MessageType, User
from ..storage import EntityStore

router = APIRouter(prefix="/gods", tags=["gods"])


@router.get("")
def list_gods(user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)) -> dict:
    return {"gods": [gods.god_summary(god) for god in gods.list_all_gods(store)]}


@router.get("/my-gods")
def my_gods(user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)) -> dict:
    return {"gods": [gods.god_card(god) for god in gods.list_gods_by_creator(store, user.id)]}


@router.post("/create")
def create_god(
    payload: GodCreate,
    token: Optional[str] = Depends(bearer_token),
    store: EntityStore = Depends(store_dependency),
) -> dict:
    token = token or (payload.token or "").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = sessions.resolve(store, token)
    god, new_balance = gods.create_god(store, user, payload)
    return {
        "success": True,
        "message": "God created",
        "godId": god.id,
        "god": gods.created_god_payload(god),
        "newBalance": new_balance,
    }


@router.get("/{god_id}")
def get_god(god_id: str, user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)) -> dict:
    return {"god": gods.require_god(store, god_id).to_json()}


@router.get("/{god_id}/chat")
def community_timeline(
    god_id: str, user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)
) -> dict:
    gods.require_god(store, god_id)
    return {"messages": [message.to_json() for message in ledger.list_by_god(store, god_id)]}


@router.post("/{god_id}/chat")
def post_to_community(
    god_id: str,
    payload: CommunityPostRequest,
    user: User = Depends(current_user),
    store: EntityStore = Depends(store_dependency),
) -> dict:
    if payload.message_type != MessageType.believer:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Community posts must use messageType 'believer'",
        )
    message_id = chat.post_community_message(store, user, god_id, payload.message or "")
    return {"message": "Message posted", "success": True, "id": message_id}


@router.get("/{god_id}/messages")
def my_exchanges(
    god_id: str, user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)
) -> dict:
    gods.require_god(store, god_id)
    return {"messages": [message.to_json() for message in ledger.list_by_user_and_god(store, user.id, god_id)]}
