from __future__ import annotations

from typing import Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from kami import generator as generator_module
from kami import sessions, storage
from kami.generator import GenerationError, TextGenerator
from kami.main import app


class ScriptedGenerator(TextGenerator):
    """Records every prompt and replies from a script, or fails on demand."""

    def __init__(self, replies: Optional[List[str]] = None, fail: bool = False) -> None:
        self.replies = list(replies or [])
        self.fail = fail
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationError("scripted failure")
        if self.replies:
            return self.replies.pop(0)
        return f"Reply #{len(self.prompts)}"


@pytest.fixture()
def store() -> Iterator[storage.MemoryStore]:
    memory = storage.MemoryStore()
    sessions.ensure_seed_accounts(memory)
    storage.configure_store(memory)
    yield memory
    storage.configure_store(None)


@pytest.fixture()
def generator() -> Iterator[ScriptedGenerator]:
    scripted = ScriptedGenerator()
    generator_module.configure_generator(scripted)
    yield scripted
    generator_module.configure_generator(None)


@pytest.fixture()
def client(store: storage.MemoryStore, generator: ScriptedGenerator) -> TestClient:
    return TestClient(app)


def login_headers(client: TestClient, email: str = "user1@kami.app", password: str = "user123") -> dict:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture()
def auth_headers(client: TestClient) -> dict:
    return login_headers(client)


def god_payload(**overrides) -> dict:
    payload = {
        "name": "Amaterasu",
        "deity": "goddess of the sun",
        "beliefs": "light reaches everyone",
        "special_skills": "dispelling gloom",
        "personality": "radiant and patient",
        "speech_style": "warm and formal",
        "relationship_with_followers": "guards them like a mother",
        "bigFiveTraits": {
            "openness": 80,
            "conscientiousness": 70,
            "extraversion": 60,
            "agreeableness": 90,
            "neuroticism": 10,
        },
        "mbtiType": "ENFJ",
        "colorTheme": "gold",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def god_id(client: TestClient, auth_headers: dict) -> str:
    response = client.post("/api/gods/create", json=god_payload(), headers=auth_headers)
    assert response.status_code == 200, response.text
    return response.json()["godId"]
