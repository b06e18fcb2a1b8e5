import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("KAMI_DATA_DIR", str(BASE_DIR / "data")))

LOG_LEVEL = os.getenv("KAMI_LOG_LEVEL", "INFO").upper()

STORAGE_BACKEND = os.getenv("KAMI_STORAGE_BACKEND", "file").lower()

API_PREFIX = os.getenv("KAMI_API_PREFIX", "/api")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("KAMI_CORS_ORIGINS", "*").split(",") if origin.strip()]

TOKEN_PREFIX = "kami-token"
TOKEN_MAX_AGE_HOURS = float(os.getenv("KAMI_TOKEN_MAX_AGE_HOURS", "168"))

MIN_PASSWORD_LENGTH = 6
STARTING_BALANCE = 1000
GOD_CREATION_COST = 500

HISTORY_LIMIT = 5
RECENT_MESSAGES_LIMIT = 10

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GENERATOR_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GENERATOR_MODEL = os.getenv("KAMI_GENERATOR_MODEL", "gemini-1.5-flash")
GENERATOR_TIMEOUT_SECONDS = float(os.getenv("KAMI_GENERATOR_TIMEOUT_SECONDS", "15"))
GENERATOR_MAX_ATTEMPTS = int(os.getenv("KAMI_GENERATOR_MAX_ATTEMPTS", "2"))
GENERATOR_RETRY_DELAY_SECONDS = float(os.getenv("KAMI_GENERATOR_RETRY_DELAY_SECONDS", "1.0"))
GENERATOR_MAX_OUTPUT_TOKENS = 200

REPLY_LANGUAGE = os.getenv("KAMI_REPLY_LANGUAGE", "Japanese")
REPLY_MAX_CHARS = 150

POLL_INTERVAL_SECONDS = float(os.getenv("KAMI_POLL_INTERVAL_SECONDS", "3"))
DEFAULT_BASE_URL = "http://127.0.0.1:8000"
CLIENT_TIMEOUT_SECONDS = float(os.getenv("KAMI_CLIENT_TIMEOUT_SECONDS", "20"))
CLIENT_GET_ATTEMPTS = int(os.getenv("KAMI_CLIENT_GET_ATTEMPTS", "2"))
CLIENT_RETRY_DELAY_SECONDS = float(os.getenv("KAMI_CLIENT_RETRY_DELAY_SECONDS", "1.0"))

DEFAULT_GOD_VALUES = {
    "category": "general",
    "mbtiType": "INFJ",
    "colorTheme": "purple",
}

SEED_ACCOUNTS = [
    {
        "id": "1",
        "username": "admin",
        "email": "admin@kami.app",
        "password": "admin123",
        "isAdmin": True,
        "isSuperAdmin": True,
        "saisenBalance": 10000,
    },
    {
        "id": "2",
        "username": "user1",
        "email": "user1@kami.app",
        "password": "user123",
        "isAdmin": False,
        "isSuperAdmin": False,
        "saisenBalance": 1000,
    },
]

COLLECTIONS = (
    "users",
    "credentials",
    "tokens",
    "revoked_tokens",
    "gods",
    "messages",
)
