from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from fastapi import HTTPException, status

from . import config
from .models import God, GodCreate, PersonaAttributes, User
from .storage import EntityStore, StorageError
from .timeutils import monotonic_now, now_utc, to_epoch_millis

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "deity", "beliefs", "special_skills")

BIG_FIVE_TRAITS = ("openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism")


def _generate_god_id() -> str:
    return f"god_{to_epoch_millis(now_utc())}_{uuid.uuid4().hex[:9]}"


def _attribute(source: Union[PersonaAttributes, Mapping[str, Any], None], name: str, alias: Optional[str] = None) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        value = source.get(name)
        if value is None and alias:
            value = source.get(alias)
        return value
    return getattr(source, name, None)


def _text(source: Any, name: str, default: str, alias: Optional[str] = None) -> str:
    value = _attribute(source, name, alias)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _big_five(source: Any) -> Optional[Dict[str, Any]]:
    traits = _attribute(source, "big_five_traits", "bigFiveTraits")
    if traits is None:
        return None
    if hasattr(traits, "model_dump"):
        traits = traits.model_dump()
    if not isinstance(traits, Mapping):
        return None
    return {key: traits.get(key, "?") for key in BIG_FIVE_TRAITS}


def describe_persona(attributes: Union[PersonaAttributes, Mapping[str, Any], None]) -> str:
    """Summarize a god's persona in one paragraph.

    Accepts a model or a plain mapping with any subset of fields and never
    raises; absent fields fall back to neutral wording.
    """

    try:
        name = _text(attributes, "name", "This god")
        deity = _text(attributes, "deity", "a mysterious deity")
        scenario = _text(attributes, "scenario", "the present day")
        sentences = [
            f"{name} is {deity}, facing {scenario}.",
            f"{name} believes in \"{_text(attributes, 'beliefs', 'compassion and wisdom')}\".",
            f"{name}'s special skill is {_text(attributes, 'special_skills', 'guiding people')} "
            f"and their personality is \"{_text(attributes, 'personality', 'kind and wise')}\".",
        ]

        traits = _big_five(attributes)
        if traits:
            rendered = ", ".join(f"{key} {traits[key]}%" for key in BIG_FIVE_TRAITS)
            sentences.append(f"Personality traits: {rendered}.")

        mbti = _attribute(attributes, "mbti_type", "mbtiType")
        if mbti:
            sentences.append(f"MBTI type is {mbti}.")

        sentences.append(
            f"{name} speaks in a \"{_text(attributes, 'speech_style', 'polite and warm')}\" manner "
            f"and acts by {_text(attributes, 'action_style', 'gently guiding others')}."
        )

        likes = _attribute(attributes, "likes")
        dislikes = _attribute(attributes, "dislikes")
        if likes and dislikes:
            sentences.append(f"{name} likes {likes} and dislikes {dislikes}.")
        elif likes:
            sentences.append(f"{name} likes {likes} and cherishes it.")
        elif dislikes:
            sentences.append(f"{name} dislikes {dislikes}.")

        sentences.append(
            f"Toward humans {name} is {_text(attributes, 'relationship_with_humans', 'approachable')}, "
            f"and toward followers {_text(attributes, 'relationship_with_followers', 'watchful like family')}."
        )

        limitations = _attribute(attributes, "limitations")
        if limitations:
            sentences.append(f"{name} is bound by this limitation: {limitations}.")
        return " ".join(sentences)
    except Exception:  # pragma: no cover
        logger.exception("Persona summary failed")
        return "A god whose nature is yet to be described."


def load_gods(store: EntityStore) -> List[God]:
    return [God.model_validate(item) for item in store.get("gods")]


def get_god(store: EntityStore, god_id: str) -> Optional[God]:
    for raw in store.get("gods"):
        if raw.get("id") == god_id:
            return God.model_validate(raw)
    return None


def require_god(store: EntityStore, god_id: str) -> God:
    god = get_god(store, god_id)
    if god is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="God not found")
    return god


def list_gods_by_creator(store: EntityStore, creator_id: str) -> List[God]:
    return [god for god in load_gods(store) if god.creator_id == creator_id]


def list_all_gods(store: EntityStore) -> List[God]:
    return sorted(load_gods(store), key=lambda god: god.created_at, reverse=True)


def _missing_fields(payload: GodCreate) -> List[str]:
    missing = []
    for field in REQUIRED_FIELDS:
        value = getattr(payload, field)
        if value is None or not str(value).strip():
            missing.append(field)
    return missing


def create_god(store: EntityStore, creator: User, payload: GodCreate) -> Tuple[God, int]:
    missing = _missing_fields(payload)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    cost = config.GOD_CREATION_COST
    with store.transaction():
        users = store.get("users")
        idx = next((i for i, raw in enumerate(users) if raw.get("id") == creator.id), None)
        if idx is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Creator account not found")
        creator = User.model_validate(users[idx])
        if creator.saisen_balance < cost:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Creating a god costs {cost} saisen. Current balance: {creator.saisen_balance}",
            )

        god = God(
            id=_generate_god_id(),
            creator_id=creator.id,
            creator_username=creator.username,
            name=payload.name.strip(),
            deity=payload.deity,
            description=payload.description or f"A god acting as {payload.deity}",
            category=payload.category or config.DEFAULT_GOD_VALUES["category"],
            mbti_type=payload.mbti_type or config.DEFAULT_GOD_VALUES["mbtiType"],
            color_theme=payload.color_theme or config.DEFAULT_GOD_VALUES["colorTheme"],
            beliefs=payload.beliefs,
            special_skills=payload.special_skills,
            personality=payload.personality,
            speech_style=payload.speech_style,
            action_style=payload.action_style,
            likes=payload.likes,
            dislikes=payload.dislikes,
            relationship_with_humans=payload.relationship_with_humans,
            relationship_with_followers=payload.relationship_with_followers,
            limitations=payload.limitations,
            scenario=payload.scenario,
            big_five_traits=payload.big_five_traits,
            generated_prompt=describe_persona(payload),
            created_at=monotonic_now(),
        )

        previous_users = [dict(raw) for raw in users]
        new_balance = creator.saisen_balance - cost
        users[idx] = creator.model_copy(update={"saisen_balance": new_balance}).to_json()
        store.put("users", users)

        gods = store.get("gods")
        gods.append(god.to_json())
        try:
            store.put("gods", gods)
        except StorageError:
            logger.exception("Storing god %s failed, restoring balance of user %s", god.id, creator.id)
            store.put("users", previous_users)
            raise

    logger.info("User %s created god %s (balance %d -> %d)", creator.id, god.id, creator.saisen_balance, new_balance)
    return god, new_balance


def god_summary(god: God) -> Dict[str, Any]:
    """Projection used by the public god list."""

    return {
        "id": god.id,
        "name": god.name,
        "description": god.description,
        "category": god.category,
        "mbtiType": god.mbti_type,
        "believersCount": god.believers_count,
        "powerLevel": god.power_level,
        "createdAt": god.to_json()["createdAt"],
        "creatorUsername": god.creator_username,
        "colorTheme": god.color_theme,
    }


def god_card(god: God) -> Dict[str, Any]:
    """Projection used by the caller's own god list."""

    return {
        "id": god.id,
        "name": god.name,
        "description": god.description,
        "believersCount": god.believers_count,
        "powerLevel": god.power_level,
        "createdAt": god.to_json()["createdAt"],
    }


def created_god_payload(god: God) -> Dict[str, Any]:
    return {
        "id": god.id,
        "name": god.name,
        "description": god.description,
        "category": god.category,
        "mbtiType": god.mbti_type,
        "believersCount": god.believers_count,
        "powerLevel": god.power_level,
    }
