from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from . import config
from .timeutils import now_utc

Percentage = Annotated[int, Field(ge=0, le=100)]


class KamiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class User(KamiModel):
    id: str
    username: str
    email: EmailStr
    is_admin: bool = Field(default=False, alias="isAdmin")
    is_super_admin: bool = Field(default=False, alias="isSuperAdmin")
    saisen_balance: int = Field(default=config.STARTING_BALANCE, ge=0, alias="saisenBalance")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")


class Credential(KamiModel):
    email: EmailStr
    password_hash: str = Field(alias="passwordHash")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")


class SessionToken(KamiModel):
    token: str
    user_id: str = Field(alias="userId")
    issued_at: datetime = Field(default_factory=now_utc, alias="issuedAt")


class RevokedToken(KamiModel):
    token: str
    user_id: str = Field(alias="userId")
    revoked_at: datetime = Field(default_factory=now_utc, alias="revokedAt")


class BigFiveTraits(KamiModel):
    openness: Percentage = 50
    conscientiousness: Percentage = 50
    extraversion: Percentage = 50
    agreeableness: Percentage = 50
    neuroticism: Percentage = 50


class PersonaAttributes(KamiModel):
    """Personality fields shared by the creation payload and the stored god."""

    deity: Optional[str] = None
    beliefs: Optional[str] = None
    special_skills: Optional[str] = None
    personality: Optional[str] = None
    speech_style: Optional[str] = None
    action_style: Optional[str] = None
    likes: Optional[str] = None
    dislikes: Optional[str] = None
    relationship_with_humans: Optional[str] = None
    relationship_with_followers: Optional[str] = None
    limitations: Optional[str] = None
    scenario: Optional[str] = None
    big_five_traits: Optional[BigFiveTraits] = Field(default=None, alias="bigFiveTraits")
    mbti_type: Optional[str] = Field(default=None, alias="mbtiType")


class GodCreate(PersonaAttributes):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    color_theme: Optional[str] = Field(default=None, alias="colorTheme")
    token: Optional[str] = None


class God(PersonaAttributes):
    id: str
    creator_id: str = Field(alias="creatorId")
    creator_username: Optional[str] = Field(default=None, alias="creatorUsername")
    name: str
    description: Optional[str] = None
    category: str = config.DEFAULT_GOD_VALUES["category"]
    mbti_type: str = Field(default=config.DEFAULT_GOD_VALUES["mbtiType"], alias="mbtiType")
    color_theme: str = Field(default=config.DEFAULT_GOD_VALUES["colorTheme"], alias="colorTheme")
    generated_prompt: Optional[str] = Field(default=None, alias="generatedPrompt")
    believers_count: int = Field(default=0, ge=0, alias="believersCount")
    power_level: int = Field(default=1, ge=1, alias="powerLevel")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")


class MessageType(str, enum.Enum):
    god = "god"
    believer = "believer"


class Message(KamiModel):
    id: str
    user_id: str = Field(alias="userId")
    username: str
    god_id: str = Field(alias="godId")
    message: str
    response: Optional[str] = None
    message_type: MessageType = Field(alias="messageType")
    is_god_message: bool = Field(default=False, alias="isGodMessage")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")


class LoginRequest(KamiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(KamiModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class VerifyRequest(KamiModel):
    token: Optional[str] = None


class ChatRequest(KamiModel):
    god_id: Optional[str] = Field(default=None, alias="godId")
    message: Optional[str] = None


class CommunityPostRequest(KamiModel):
    message: Optional[str] = None
    message_type: MessageType = Field(default=MessageType.believer, alias="messageType")
