"""HTTP client for the kAmI API and the polling loop used by chat views."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from . import config
from .sessions import is_token_stale

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Raised when the API returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class KamiClient:
    def __init__(
        self,
        base_url: str = config.DEFAULT_BASE_URL,
        *,
        api_prefix: str = config.API_PREFIX,
        timeout: float = config.CLIENT_TIMEOUT_SECONDS,
        get_attempts: int = config.CLIENT_GET_ATTEMPTS,
        retry_delay: float = config.CLIENT_RETRY_DELAY_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + api_prefix
        self.timeout = timeout
        self.get_attempts = max(1, get_attempts)
        self.retry_delay = max(0.0, retry_delay)
        self.session = session or requests.Session()
        self.token: Optional[str] = None

    def _send(self, method: str, url: str, payload: Optional[Dict[str, Any]]) -> Any:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.session.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteError(f"Failed to contact {self.base_url}: {exc}") from exc

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        if response.status_code == 401:
            self.token = None
        if response.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            raise RemoteError(f"{response.status_code}: {detail or response.reason}", response.status_code)
        return body

    def request(self, method: str, path: str, *, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Send one API call; GETs are retried on transport errors and 5xx."""

        url = f"{self.base_url}/{path.lstrip('/')}"
        attempts = self.get_attempts if method.upper() == "GET" else 1
        for attempt in range(1, attempts + 1):
            try:
                return self._send(method, url, payload)
            except RemoteError as exc:
                if attempt == attempts or not exc.retryable:
                    raise
                logger.warning("%s %s failed, retrying (%d/%d): %s", method, path, attempt, attempts, exc)
                time.sleep(self.retry_delay)

    def _field(self, body: Any, key: str) -> Any:
        if not isinstance(body, dict) or key not in body:
            raise RemoteError(f"Response is missing '{key}'")
        return body[key]

    def token_is_stale(self) -> bool:
        return self.token is None or is_token_stale(self.token)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/login", payload={"email": email, "password": password})
        self.token = self._field(data, "token")
        return self._field(data, "user")

    def logout(self) -> None:
        if self.token:
            self.request("POST", "/auth/logout")
        self.token = None

    def chat(self, god_id: str, message: str) -> Dict[str, Any]:
        data = self.request("POST", "/chat", payload={"godId": god_id, "message": message})
        self._field(data, "response")
        return data

    def post_community(self, god_id: str, message: str) -> Dict[str, Any]:
        return self.request("POST", f"/gods/{god_id}/chat", payload={"message": message, "messageType": "believer"})

    def timeline(self, god_id: str) -> List[Dict[str, Any]]:
        return self._field(self.request("GET", f"/gods/{god_id}/chat"), "messages")

    def my_messages(self, god_id: str) -> List[Dict[str, Any]]:
        return self._field(self.request("GET", f"/gods/{god_id}/messages"), "messages")

    def wallet(self) -> int:
        return self._field(self.request("GET", "/wallet"), "balance")


class TimelinePoller:
    """Re-reads a timeline on a fixed interval and reports unseen entries."""

    def __init__(
        self,
        fetch: Callable[[], List[Dict[str, Any]]],
        interval: float = config.POLL_INTERVAL_SECONDS,
    ) -> None:
        self.fetch = fetch
        self.interval = interval
        self._seen: set = set()
        self._stop_event = threading.Event()

    def poll_once(self) -> List[Dict[str, Any]]:
        fresh = []
        for entry in self.fetch():
            entry_id = entry.get("id")
            if entry_id in self._seen:
                continue
            self._seen.add(entry_id)
            fresh.append(entry)
        return fresh

    def run(self, on_messages: Callable[[List[Dict[str, Any]]], None]) -> None:
        while True:
            try:
                fresh = self.poll_once()
            except RemoteError as exc:
                logger.warning("Timeline poll failed: %s", exc)
            else:
                if fresh:
                    on_messages(fresh)
            if self._stop_event.wait(self.interval):
                break

    def stop(self) -> None:
        self._stop_event.set()
