# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Route gates.

The two gates fail differently on purpose:

- ``require_session`` (auth gate) redirects anonymous visitors to ``/login``
  and the handler never runs.
- ``require_admin`` (admin gate) never stops the request. A non-admin session
  is flagged with ``request.state.permission_denied = True`` and the handler
  decides how to render the 403.
"""

from __future__ import annotations

import enum

from fastapi import Depends, HTTPException, Request

from clubhouse.auth.session import SessionState
from clubhouse.auth.users import ROLE_ADMIN
from clubhouse.context import AppContext, get_context


class Access(enum.Enum):
    REDIRECT_LOGIN = "redirect_login"
    ALLOWED = "allowed"
    DENIED = "denied"


def check_access(session: SessionState, *, admin: bool = False) -> Access:
    if not session.authenticated:
        return Access.REDIRECT_LOGIN
    if admin and session.role != ROLE_ADMIN:
        return Access.DENIED
    return Access.ALLOWED


def current_session(request: Request, ctx: AppContext = Depends(get_context)) -> SessionState:
    return ctx.sessions.get(getattr(request.state, "session_token", None))


def require_session(session: SessionState = Depends(current_session)) -> SessionState:
    if check_access(session) is Access.REDIRECT_LOGIN:
        raise HTTPException(status_code=303, headers={"Location": "/login"})
    return session


def require_admin(request: Request, session: SessionState = Depends(require_session)) -> SessionState:
    request.state.permission_denied = check_access(session, admin=True) is Access.DENIED
    return session


def permission_denied(request: Request) -> bool:
    return bool(getattr(request.state, "permission_denied", False))
