# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer


@dataclass(frozen=True)
class SessionState:
    authenticated: bool = False
    name: str = ""
    role: str = ""
    user_id: str = ""


ANONYMOUS = SessionState()


class SessionStore:
    """Process-wide mapping from an opaque token to session state.

    Name, role and user id are a snapshot taken at login time; changing a user's
    role in the credential store does not touch sessions that already exist.
    Entries older than ``max_age`` seconds are dropped when looked up, and
    ``create_session`` sweeps the whole map at most once per ``sweep_interval``
    seconds so tokens that never come back do not pile up.
    """

    def __init__(
        self,
        *,
        max_age: int,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_age = max_age
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: Dict[str, Tuple[float, SessionState]] = {}
        self._last_sweep = clock()

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self._live(token) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def _live(self, token: str) -> Optional[SessionState]:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        created, state = entry
        if self._expired(created, self._clock()):
            self._sessions.pop(token, None)
            return None
        return state

    def _expired(self, created: float, now: float) -> bool:
        return bool(self.max_age) and now - created > self.max_age

    def purge_expired(self) -> int:
        now = self._clock()
        self._last_sweep = now
        stale = [t for t, (created, _) in list(self._sessions.items()) if self._expired(created, now)]
        for t in stale:
            self._sessions.pop(t, None)
        return len(stale)

    def create_session(self) -> str:
        now = self._clock()
        if now - self._last_sweep >= self.sweep_interval:
            self.purge_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = (now, ANONYMOUS)
        return token

    def authenticate(self, token: str, name: str, role: str, user_id: str) -> SessionState:
        state = SessionState(authenticated=True, name=name, role=role, user_id=user_id)
        created, _ = self._sessions.get(token, (self._clock(), ANONYMOUS))
        self._sessions[token] = (created, state)
        return state

    def destroy(self, token: str) -> None:
        self._sessions.pop(token, None)

    def get(self, token: Optional[str]) -> SessionState:
        if not token:
            return ANONYMOUS
        return self._live(token) or ANONYMOUS


# --- cookie signing ---


class CookieSigner:
    def __init__(self, secret_key: str, salt: str):
        if not secret_key:
            raise RuntimeError("Missing session secret key")
        self._s = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def sign_token(self, token: str) -> str:
        return self._s.dumps({"t": token})

    def unsign_token(self, value: str, *, max_age: int) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._s.loads(value, max_age=max_age)
        except (BadSignature, BadTimeSignature):
            return None
        t = str((data or {}).get("t") or "").strip() if isinstance(data, dict) else ""
        return t or None
