from __future__ import annotations

import logging
import uuid
from typing import Dict, List

from . import config
from .models import Message, MessageType
from .storage import EntityStore
from .timeutils import monotonic_now, to_epoch_millis

logger = logging.getLogger(__name__)


def _generate_message_id() -> str:
    return f"msg_{to_epoch_millis(monotonic_now())}_{uuid.uuid4().hex[:9]}"


def load_messages(store: EntityStore) -> List[Message]:
    return [Message.model_validate(item) for item in store.get("messages")]


def _chronological(messages: List[Message], reverse: bool = False) -> List[Message]:
    # sorted() is stable, so equal timestamps keep their append order.
    return sorted(messages, key=lambda message: message.created_at, reverse=reverse)


def append_message(store: EntityStore, message: Message) -> str:
    """Persist a chat event, stamping its id and creation time."""

    with store.transaction():
        stored = message.model_copy(update={"id": _generate_message_id(), "created_at": monotonic_now()})
        messages = store.get("messages")
        messages.append(stored.to_json())
        store.put("messages", messages)

    logger.debug("Appended %s message %s for god %s", stored.message_type.value, stored.id, stored.god_id)
    return stored.id


def list_by_god(store: EntityStore, god_id: str) -> List[Message]:
    return _chronological([m for m in load_messages(store) if m.god_id == god_id])


def list_by_user_and_god(store: EntityStore, user_id: str, god_id: str) -> List[Message]:
    return _chronological(
        [
            m
            for m in load_messages(store)
            if m.user_id == user_id and m.god_id == god_id and m.message_type == MessageType.god
        ]
    )


def list_by_user(store: EntityStore, user_id: str, limit: int = config.RECENT_MESSAGES_LIMIT) -> List[Message]:
    exchanges = [m for m in load_messages(store) if m.user_id == user_id and m.message_type == MessageType.god]
    return _chronological(exchanges, reverse=True)[: max(0, limit)]


def list_recent_history(
    store: EntityStore, user_id: str, god_id: str, n: int = config.HISTORY_LIMIT
) -> List[Dict[str, str]]:
    if n <= 0:
        return []
    exchanges = list_by_user_and_god(store, user_id, god_id)[-n:]
    return [{"message": m.message, "response": m.response or ""} for m in exchanges]
