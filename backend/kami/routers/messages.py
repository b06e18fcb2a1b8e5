from __future__ import annotations

from fastapi import APIRouter, Depends

from .. import config, gods, ledger
from ..deps import current_user, store_dependency
from ..models import User
from ..storage import EntityStore

router = APIRouter(prefix="/messages", tags=["messages"])

UNKNOWN_GOD_NAME = "Unknown god"


@router.get("/recent")
def recent(user: User = Depends(current_user), store: EntityStore = Depends(store_dependency)) -> dict:
    names = {god.id: god.name for god in gods.load_gods(store)}
    records = ledger.list_by_user(store, user.id, config.RECENT_MESSAGES_LIMIT)
    messages = []
    for record in records:
        payload = record.to_json()
        messages.append(
            {
                "id": payload["id"],
                "message": payload["message"],
                "response": payload["response"],
                "godName": names.get(record.god_id, UNKNOWN_GOD_NAME),
                "createdAt": payload["createdAt"],
            }
        )
    return {"messages": messages}
