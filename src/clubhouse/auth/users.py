# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hashlib
import logging
import os
import secrets
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from clubhouse.core.errors import DuplicateIdentity, InvalidRole, StorageError, UserNotFound

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = frozenset({ROLE_USER, ROLE_ADMIN})


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    name: str
    role: str
    password_hash: str


def new_user_id() -> str:
    """24 hex chars, same shape as a MongoDB ObjectId."""
    return secrets.token_hex(12)


def derived_user_id(email: str) -> str:
    """Stable id for hand-written entries that have none; saved on the next write."""
    return hashlib.sha256(email.encode("utf-8")).hexdigest()[:24]


def _parse_document(raw: object) -> Dict[str, UserRecord]:
    users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
    if not isinstance(users, dict):
        raise StorageError("\"users\" must be a mapping of email -> record")
    out: Dict[str, UserRecord] = {}
    for email, udata in users.items():
        email = str(email or "").strip()
        # Rewriting the file drops whatever was not parsed, so refuse instead.
        if not email or not isinstance(udata, dict):
            raise StorageError(f"Malformed user entry: {email!r}")
        uid = str(udata.get("id") or "").strip() or derived_user_id(email)
        role = str(udata.get("role") or ROLE_USER).strip().lower()
        out[email] = UserRecord(
            id=uid,
            email=email,
            name=str(udata.get("name") or ""),
            role=role if role in ROLES else ROLE_USER,
            password_hash=str(udata.get("password_hash") or "").strip(),
        )
    return out


def _dump_document(users: Dict[str, UserRecord]) -> dict:
    return {
        "version": 1,
        "users": {
            u.email: {
                "id": u.id,
                "name": u.name,
                "role": u.role,
                "password_hash": u.password_hash,
            }
            for u in users.values()
        },
    }


class UserStore:
    """Credential store persisted as a YAML document keyed by email.

    Reads are cached by file identity (inode, mtime, size), so edits made by
    ``scripts/create_user.py`` are seen on the next lookup. Every write re-reads
    the file and rewrites it atomically while holding the store lock; the
    identity check in ``create`` happens inside that same critical section.
    Entries written by hand without an ``id`` get a stable one derived from
    the email, which is persisted by the next write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._cache: Tuple[Optional[tuple], Dict[str, UserRecord]] = (None, {})

    def open(self) -> None:
        """Make sure the store is usable before the app starts serving."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create user store directory {self.path.parent}") from exc
        users = self._load()
        logger.info("User store ready at %s (%d users)", self.path, len(users))

    # --- reads ---

    def _read_file(self) -> Dict[str, UserRecord]:
        if not self.path.exists():
            return {}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise StorageError(f"Cannot read user store {self.path}") from exc
        return _parse_document(raw)

    def _stamp(self) -> Optional[tuple]:
        # Writes go through os.replace, so the inode changes on every save.
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Cannot stat user store {self.path}") from exc
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _load(self) -> Dict[str, UserRecord]:
        stamp = self._stamp()
        cached_stamp, cached_users = self._cache
        if stamp is not None and stamp == cached_stamp:
            return cached_users

        users = self._read_file()
        self._cache = (stamp, users)
        return users

    def find_by_identity(self, email: str) -> Optional[UserRecord]:
        if not email:
            return None
        return self._load().get(email)

    def get(self, user_id: str) -> Optional[UserRecord]:
        if not user_id:
            return None
        for u in self._load().values():
            if u.id == user_id:
                return u
        return None

    def list_users(self) -> List[UserRecord]:
        return list(self._load().values())

    # --- writes ---

    def _write(self, users: Dict[str, UserRecord]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        text = yaml.safe_dump(_dump_document(users), sort_keys=False, allow_unicode=True)
        try:
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write user store {self.path}") from exc
        self._cache = (self._stamp(), users)

    def create(self, email: str, name: str, password_hash: str) -> UserRecord:
        with self._lock:
            users = dict(self._read_file())
            if email in users:
                raise DuplicateIdentity(email)
            taken = {u.id for u in users.values()}
            uid = new_user_id()
            while uid in taken:
                uid = new_user_id()
            user = UserRecord(id=uid, email=email, name=name, role=ROLE_USER, password_hash=password_hash)
            users[email] = user
            self._write(users)
        logger.info("Created user %s (%s)", user.id, email)
        return user

    def set_role(self, user_id: str, role: str) -> UserRecord:
        if role not in ROLES:
            raise InvalidRole(role)
        with self._lock:
            users = dict(self._read_file())
            for email, u in users.items():
                if u.id == user_id:
                    break
            else:
                raise UserNotFound(user_id)
            if u.role == role:
                return u
            updated = replace(u, role=role)
            users[email] = updated
            self._write(users)
        logger.info("Role of user %s set to %s", user_id, role)
        return updated
