# client.py
"""Client-side session holder.

Mirrors the browser flow: a token and a ``{username}`` summary are kept in a
small local store; on start the token is exchanged for a verified identity
through ``/api/auth/me``. Anything short of a clean 200 logs the user out.
"""
import enum
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from .models import UserPublic

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
LOGIN_PATH = "/login"


class LocalStorage:
    """JSON file with string keys, the stand-in for browser localStorage."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("unreadable session file %s: %s", self.path, e)
            return {}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def update(self, values: Dict[str, str]) -> None:
        data = self._load()
        data.update(values)
        self._save(data)

    def remove(self, *keys: str) -> None:
        data = self._load()
        for key in keys:
            data.pop(key, None)
        self._save(data)


class SessionPhase(str, enum.Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


_ALLOWED = {
    (SessionPhase.LOADING, SessionPhase.AUTHENTICATED),
    (SessionPhase.LOADING, SessionPhase.ANONYMOUS),
    (SessionPhase.AUTHENTICATED, SessionPhase.ANONYMOUS),
    (SessionPhase.ANONYMOUS, SessionPhase.AUTHENTICATED),
    (SessionPhase.AUTHENTICATED, SessionPhase.AUTHENTICATED),
    (SessionPhase.ANONYMOUS, SessionPhase.ANONYMOUS),
}


class InvalidTransition(RuntimeError):
    pass


def _log_navigation(path: str) -> None:
    logger.info("navigating to %s", path)


class SessionClient:
    def __init__(self, base_url: str, storage: LocalStorage,
                 navigate: Callable[[str], None] = _log_navigation,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url
        self.storage = storage
        self._navigate = navigate
        self._transport = transport
        self.phase = SessionPhase.LOADING
        self.user: Optional[Dict[str, Any]] = None

    @property
    def loading(self) -> bool:
        return self.phase is SessionPhase.LOADING

    def _move(self, phase: SessionPhase, user: Optional[Dict[str, Any]] = None) -> None:
        if (self.phase, phase) not in _ALLOWED:
            raise InvalidTransition(f"{self.phase.value} -> {phase.value}")
        self.phase = phase
        self.user = user

    def _clear(self) -> None:
        self.storage.remove(TOKEN_KEY, USER_KEY)

    async def bootstrap(self) -> Optional[Dict[str, Any]]:
        """Verify the stored token once at start-up; returns the current user."""
        if not self.loading:
            raise InvalidTransition("session already bootstrapped")

        token = self.storage.get(TOKEN_KEY)
        if not token:
            self._move(SessionPhase.ANONYMOUS)
            return None

        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self._transport) as http:
                res = await http.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
            if res.status_code == 200:
                identity = UserPublic.model_validate(res.json())
                self._move(SessionPhase.AUTHENTICATED, identity.model_dump())
                return self.user
            logger.info("stored session rejected with status %s", res.status_code)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("failed to verify stored session: %s", e)

        self._clear()
        self._move(SessionPhase.ANONYMOUS)
        return None

    def login(self, identity: Dict[str, Any], token: str) -> None:
        # trusted: the caller just got this token from register/login
        self.storage.update({
            TOKEN_KEY: token,
            USER_KEY: json.dumps({"username": identity.get("username")}),
        })
        self._move(SessionPhase.AUTHENTICATED, identity)

    def logout(self) -> None:
        self._clear()
        self._move(SessionPhase.ANONYMOUS)
        self._navigate(LOGIN_PATH)
