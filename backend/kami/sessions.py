from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status

from . import config
from .models import Credential, RevokedToken, SessionToken, User
from .storage import EntityStore
from .timeutils import from_epoch_millis, now_utc, to_epoch_millis

logger = logging.getLogger(__name__)


def _hash_password(secret: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(8)
    digest = hashlib.sha256(f"{salt}:{secret}".encode()).hexdigest()
    return f"{salt}${digest}"


def _password_matches(expected_hash: str, candidate: str) -> bool:
    if not expected_hash or "$" not in expected_hash:
        return False
    salt, _ = expected_hash.split("$", 1)
    return hmac.compare_digest(expected_hash, _hash_password(candidate, salt))


def _preview(token: str) -> str:
    return token[:24] + "..." if len(token) > 24 else token


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def load_users(store: EntityStore) -> List[User]:
    return [User.model_validate(item) for item in store.get("users")]


def find_user(store: EntityStore, user_id: str) -> Optional[User]:
    for raw in store.get("users"):
        if raw.get("id") == user_id:
            return User.model_validate(raw)
    return None


def _next_user_id(users: List[Dict[str, Any]]) -> str:
    numeric = [int(raw["id"]) for raw in users if str(raw.get("id", "")).isdigit()]
    return str(max(numeric, default=0) + 1)


def mint_token(user_id: str, issued_at: Optional[datetime] = None) -> str:
    issued_at = issued_at or now_utc()
    return f"{config.TOKEN_PREFIX}-{user_id}-{to_epoch_millis(issued_at)}"


def parse_token(token: str) -> Optional[Tuple[str, datetime]]:
    """Decode `<prefix>-<userId>-<epoch ms>` into its user id and issuance time."""

    prefix = f"{config.TOKEN_PREFIX}-"
    if not token or not token.startswith(prefix):
        return None
    user_id, _, millis = token[len(prefix):].rpartition("-")
    if not user_id or not millis.isdigit():
        return None
    try:
        return user_id, from_epoch_millis(int(millis))
    except (OverflowError, OSError, ValueError):
        return None


def is_token_stale(token: str, now: Optional[datetime] = None, max_age_hours: Optional[float] = None) -> bool:
    parsed = parse_token(token)
    if parsed is None:
        return True
    _, issued_at = parsed
    now = now or now_utc()
    max_age = timedelta(hours=config.TOKEN_MAX_AGE_HOURS if max_age_hours is None else max_age_hours)
    return issued_at > now or now - issued_at > max_age


def public_user(user: User) -> Dict[str, Any]:
    return user.to_json()


def register(store: EntityStore, username: Optional[str], email: Optional[str], password: Optional[str]) -> User:
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email or not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username, email and password are required")
    if len(password) < config.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters",
        )

    normalized_email = _normalize_email(email)
    with store.transaction():
        users = store.get("users")
        if any(
            raw.get("email", "").lower() == normalized_email or raw.get("username") == username
            for raw in users
        ):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already registered")

        user = User(id=_next_user_id(users), username=username, email=normalized_email)
        credential = Credential(email=normalized_email, password_hash=_hash_password(password))

        credentials = store.get("credentials")
        credentials.append(credential.to_json())
        store.put("credentials", credentials)
        users.append(user.to_json())
        store.put("users", users)

    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


def login(store: EntityStore, email: Optional[str], password: Optional[str]) -> Tuple[User, str]:
    if not email or not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    normalized_email = _normalize_email(email)
    with store.transaction():
        credential = next(
            (Credential.model_validate(raw) for raw in store.get("credentials") if raw.get("email", "").lower() == normalized_email),
            None,
        )
        user = next((u for u in load_users(store) if u.email.lower() == normalized_email), None)
        if credential is None or user is None or not _password_matches(credential.password_hash, password):
            logger.info("Rejected login for %s", normalized_email)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

        issued_at = now_utc()
        token = mint_token(user.id, issued_at)
        tokens = store.get("tokens")
        tokens.append(SessionToken(token=token, user_id=user.id, issued_at=issued_at).to_json())
        store.put("tokens", tokens)

    logger.info("User %s logged in (%d active tokens)", user.id, len(tokens))
    return user, token


def _is_revoked(store: EntityStore, token: str) -> bool:
    return any(raw.get("token") == token for raw in store.get("revoked_tokens"))


def resolve(store: EntityStore, token: Optional[str]) -> User:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    with store.transaction():
        for raw in store.get("tokens"):
            if raw.get("token") != token:
                continue
            user = find_user(store, raw.get("userId", ""))
            if user is None:
                break
            return user

        parsed = parse_token(token)
        if parsed is None:
            logger.info("Rejected malformed token %s", _preview(token))
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

        user_id, issued_at = parsed
        user = find_user(store, user_id)
        if user is None or _is_revoked(store, token) or is_token_stale(token):
            logger.info("Rejected token %s", _preview(token))
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

        tokens = [raw for raw in store.get("tokens") if raw.get("token") != token]
        tokens.append(SessionToken(token=token, user_id=user.id, issued_at=issued_at).to_json())
        store.put("tokens", tokens)

    logger.info("Restored token mapping %s for user %s", _preview(token), user.id)
    return user


def logout(store: EntityStore, token: str) -> User:
    """Revoke a token that currently resolves; anything else is a 401."""

    with store.transaction():
        user = resolve(store, token)
        store.put("tokens", [raw for raw in store.get("tokens") if raw.get("token") != token])

        # Stale tokens never resolve, so only fresh revocations are kept.
        revoked = [raw for raw in store.get("revoked_tokens") if not is_token_stale(raw.get("token", ""))]
        revoked.append(RevokedToken(token=token, user_id=user.id).to_json())
        store.put("revoked_tokens", revoked)

    logger.info("Logged out token %s for user %s", _preview(token), user.id)
    return user


def ensure_seed_accounts(store: EntityStore) -> int:
    """Create the demo accounts when no user exists yet."""

    with store.transaction():
        if store.get("users"):
            return 0
        users = []
        credentials = []
        for seed in config.SEED_ACCOUNTS:
            user = User(
                id=seed["id"],
                username=seed["username"],
                email=seed["email"],
                is_admin=seed["isAdmin"],
                is_super_admin=seed["isSuperAdmin"],
                saisen_balance=seed["saisenBalance"],
            )
            users.append(user.to_json())
            credentials.append(Credential(email=seed["email"], password_hash=_hash_password(seed["password"])).to_json())
        store.put("credentials", credentials)
        store.put("users", users)

    logger.info("Seeded %d demo accounts", len(users))
    return len(users)

