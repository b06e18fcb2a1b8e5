from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status

from . import config, gods, ledger
from .generator import GenerationError, TextGenerator
from .models import God, Message, MessageType, User
from .storage import EntityStore

logger = logging.getLogger(__name__)


class ChatStage(str, enum.Enum):
    authenticated = "authenticated"
    god_resolved = "god_resolved"
    history_loaded = "history_loaded"
    prompt_built = "prompt_built"
    generated = "generated"
    fallback_selected = "fallback_selected"
    persisted = "persisted"
    responded = "responded"


@dataclass
class ChatOutcome:
    response: str
    god_name: str
    stages: List[ChatStage] = field(default_factory=list)
    used_fallback: bool = False
    message_id: Optional[str] = None

    @property
    def stage(self) -> Optional[ChatStage]:
        return self.stages[-1] if self.stages else None

    def to_json(self) -> Dict[str, str]:
        return {"response": self.response, "godName": self.god_name}


def _value(value: Optional[str], default: str) -> str:
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def build_chat_prompt(
    god: God,
    user_message: str,
    history: Sequence[Dict[str, str]],
    language: str = config.REPLY_LANGUAGE,
    max_chars: int = config.REPLY_MAX_CHARS,
) -> str:
    """Assemble the in-character prompt for one chat turn."""

    lines = [
        f"You are a god named \"{god.name}\".",
        "",
        "[Identity]",
        f"Divinity: {_value(god.deity, 'a mysterious god')}",
        f"Beliefs: {_value(god.beliefs, 'compassion and wisdom')}",
        f"Special skills: {_value(god.special_skills, 'guiding people')}",
        f"Power level: {god.power_level}",
        "",
        "[Personality]",
        f"Personality: {_value(god.personality or god.description, 'compassionate and full of wisdom')}",
        f"Speech style: {_value(god.speech_style, 'polite and warm')}",
        f"Action style: {_value(god.action_style, 'guides gently')}",
        f"MBTI type: {_value(god.mbti_type, 'ENFJ')}",
        "",
        "[Preferences and relationships]",
        f"Likes: {_value(god.likes, 'people who keep trying')}",
        f"Dislikes: {_value(god.dislikes, 'giving up')}",
        f"Relationship with humans: {_value(god.relationship_with_humans, 'friendly and approachable')}",
        f"Relationship with followers: {_value(god.relationship_with_followers, 'watches over them like family')}",
    ]

    if god.limitations:
        lines += ["", "[Limitations]", f"Limitations: {god.limitations}"]

    if god.big_five_traits is not None:
        traits = god.big_five_traits
        lines += [
            "",
            "[Big Five traits]",
            f"Openness: {traits.openness}%",
            f"Conscientiousness: {traits.conscientiousness}%",
            f"Extraversion: {traits.extraversion}%",
            f"Agreeableness: {traits.agreeableness}%",
            f"Neuroticism: {traits.neuroticism}%",
        ]

    lines += [
        "",
        "[Background]",
        _value(god.scenario, "A god who has descended into the modern world"),
        "",
        "Follow these rules when replying:",
        "1. Speak exactly as the personality above describes.",
        "2. Keep the configured speech style.",
        f"3. Reply in {language}.",
        "4. Stay close to the person's concern and advise them from your beliefs.",
        "5. Draw on your special skills and abilities.",
        "6. The higher your power level, the deeper and stronger your message.",
        f"7. Keep the reply within {max_chars} characters.",
        "8. Reflect your likes and values.",
        "9. Respect your limitations if you have any.",
        "",
        "Previous conversation:",
    ]
    for exchange in history:
        lines.append(f"Human: {exchange.get('message', '')}")
        lines.append(f"{god.name}: {exchange.get('response', '')}")
    lines += [
        "",
        f"Current message from the believer: {user_message}",
        "",
        f"Reply as {god.name}, following the detailed persona above:",
    ]
    return "\n".join(lines)


def fallback_replies(god: God) -> List[str]:
    skills = f" With my gift of {god.special_skills}," if god.special_skills else ""
    return [
        f"An oracle from {god.name}: {_value(god.beliefs, 'May peace dwell in your heart')}.{skills} "
        "believe in your inner strength when times are hard.",
        f"From {god.name}: I answer you {_value(god.relationship_with_humans, 'with affection')}. "
        "This may be a time of trial, but the path will open.",
        f"The teaching of {god.name}: {_value(god.personality, 'With a compassionate heart')}, I tell you "
        "that life has its waves. Today's pain will become nourishment for your growth.",
        f"Words from {god.name}: you are not alone. {_value(god.relationship_with_followers, 'I am always watching over you')}.",
    ]


def pick_fallback(god: God, rng: Optional[random.Random] = None) -> str:
    chooser = rng or random
    return chooser.choice(fallback_replies(god))


def _generate(generator: TextGenerator, prompt: str) -> str:
    try:
        text = generator.generate(prompt)
    except GenerationError:
        raise
    except Exception as exc:
        raise GenerationError(f"Generator raised {type(exc).__name__}") from exc
    if not isinstance(text, str) or not text.strip():
        raise GenerationError("Generator returned an empty reply")
    return text.strip()


def converse(
    store: EntityStore,
    generator: TextGenerator,
    user: User,
    god_id: str,
    message: str,
    rng: Optional[random.Random] = None,
) -> ChatOutcome:
    """Run one god-directed chat turn and persist the exchange.

    Generator failures never reach the caller; a persona-flavored fallback
    reply is stored and returned instead.
    """

    text = (message or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    stages = [ChatStage.authenticated]
    god = gods.require_god(store, god_id)
    stages.append(ChatStage.god_resolved)

    history = ledger.list_recent_history(store, user.id, god.id, config.HISTORY_LIMIT)
    stages.append(ChatStage.history_loaded)

    prompt = build_chat_prompt(god, text, history)
    stages.append(ChatStage.prompt_built)
    logger.info("Generating reply from %s for user %s (%d history items)", god.id, user.id, len(history))

    used_fallback = False
    try:
        response = _generate(generator, prompt)
        stages.append(ChatStage.generated)
    except GenerationError as exc:
        logger.warning("Generation for god %s failed, using fallback: %s", god.id, exc)
        response = pick_fallback(god, rng)
        used_fallback = True
        stages.append(ChatStage.fallback_selected)

    message_id = ledger.append_message(
        store,
        Message(
            id="",
            user_id=user.id,
            username=user.username,
            god_id=god.id,
            message=text,
            response=response,
            message_type=MessageType.god,
            is_god_message=True,
        ),
    )
    stages.append(ChatStage.persisted)
    stages.append(ChatStage.responded)
    logger.debug("Chat turn for god %s: %s", god.id, " -> ".join(s.value for s in stages))
    return ChatOutcome(
        response=response,
        god_name=god.name,
        stages=stages,
        used_fallback=used_fallback,
        message_id=message_id,
    )


def post_community_message(store: EntityStore, user: User, god_id: str, message: str) -> str:
    god = gods.require_god(store, god_id)
    if not (message or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    return ledger.append_message(
        store,
        Message(
            id="",
            user_id=user.id,
            username=user.username,
            god_id=god.id,
            message=message,
            message_type=MessageType.believer,
            is_god_message=False,
        ),
    )
