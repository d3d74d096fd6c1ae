# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application context.

Everything that lives for the whole process (settings, credential store,
session store, hasher, templates) is built once by ``build_context`` and hung
off ``app.state.ctx``. Route handlers receive it through ``get_context``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from clubhouse.auth.passwords import CredentialHasher
from clubhouse.auth.session import CookieSigner, SessionStore
from clubhouse.auth.users import UserStore
from clubhouse.core.config import Settings

BASE_DIR = Path(__file__).resolve().parent


@dataclass
class AppContext:
    settings: Settings
    hasher: CredentialHasher
    users: UserStore
    sessions: SessionStore
    signer: CookieSigner
    templates: Jinja2Templates


def build_context(settings: Settings) -> AppContext:
    return AppContext(
        settings=settings,
        hasher=CredentialHasher(
            time_cost=settings.hash_time_cost,
            memory_cost=settings.hash_memory_cost,
            parallelism=settings.hash_parallelism,
        ),
        users=UserStore(settings.users_path),
        sessions=SessionStore(max_age=settings.session_max_age),
        signer=CookieSigner(settings.secret_key, settings.session_salt),
        templates=Jinja2Templates(directory=str(BASE_DIR / "templates")),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx
