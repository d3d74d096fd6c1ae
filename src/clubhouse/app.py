# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from clubhouse.auth.session import SessionState
from clubhouse.auth.users import ROLE_ADMIN, ROLE_USER
from clubhouse.context import BASE_DIR, AppContext, build_context, get_context
from clubhouse.core.config import Settings, load_settings
from clubhouse.core.errors import (
    CredentialMismatch,
    DuplicateIdentity,
    IdentityNotFound,
    StorageError,
    UserNotFound,
    ValidationFailed,
)
from clubhouse.permissions import permission_denied, require_admin, require_session
from clubhouse.services.account_service import change_role, log_in, register, validate_signup

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Try again."
FORBIDDEN_MESSAGE = "403: You do not have permission to view this page."


def _render(request: Request, template_name: str, ctx: dict, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session."""
    app_ctx: AppContext = request.app.state.ctx
    base_ctx = {
        "session": app_ctx.sessions.get(getattr(request.state, "session_token", None)),
    }
    merged = {**base_ctx, **(ctx or {})}
    return app_ctx.templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _render_forbidden(request: Request):
    return _render(
        request,
        "admin.html",
        {"title": "Admin", "users": [], "error": FORBIDDEN_MESSAGE},
        status_code=403,
    )


def _start_authenticated_session(request: Request, ctx: AppContext, user) -> None:
    ctx.sessions.authenticate(request.state.session_token, user.name, user.role, user.id)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    ctx = build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Nothing is served until the credential store is readable.
        ctx.users.open()
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.ctx = ctx
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        if request.url.path.startswith("/static/"):
            return await call_next(request)
        cookie = request.cookies.get(settings.cookie_name, "")
        token = ctx.signer.unsign_token(cookie, max_age=settings.session_max_age)
        issued = False
        if not token or token not in ctx.sessions:
            token = ctx.sessions.create_session()
            issued = True
        request.state.session_token = token
        response = await call_next(request)
        if issued and token in ctx.sessions:
            response.set_cookie(
                settings.cookie_name,
                ctx.signer.sign_token(token),
                max_age=settings.session_max_age,
                **settings.cookie_settings(),
            )
        return response

    # Catch-all: a known path with the wrong method also gets the 404 page.
    @app.exception_handler(404)
    @app.exception_handler(405)
    async def _not_found(request: Request, exc):
        return _render(request, "404.html", {"title": "Page Not Found"}, status_code=404)

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _render(request, "error.html", {"title": "Error", "error": GENERIC_ERROR}, status_code=500)

    # ------------------ Routes ------------------

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        return _render(request, "index.html", {"title": "Home"})

    @app.get("/signup", response_class=HTMLResponse)
    def signup_get(request: Request):
        return _render(request, "signup.html", {"title": "Sign Up", "error": None})

    @app.post("/signup")
    def signup_post(
        request: Request,
        name: str = Form(""),
        email: str = Form(""),
        password: str = Form(""),
        ctx: AppContext = Depends(get_context),
    ):
        def _form_error(message: str):
            return _render(request, "signup.html", {"title": "Sign Up", "error": message})

        try:
            form = validate_signup(name=name, email=email, password=password)
            user = register(ctx, form)
        except ValidationFailed as e:
            return _form_error(str(e))
        except DuplicateIdentity:
            return _form_error("Email already in use")
        except StorageError:
            logger.exception("Signup failed")
            return _form_error(GENERIC_ERROR)

        _start_authenticated_session(request, ctx, user)
        return RedirectResponse(url="/members", status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        return _render(request, "login.html", {"title": "Login", "email": "", "error": ""})

    @app.post("/login")
    def login_post(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        ctx: AppContext = Depends(get_context),
    ):
        def _form_error(message: str):
            return _render(request, "login.html", {"title": "Login", "email": email, "error": message})

        # "Email not found" vs "Incorrect password" tells an attacker which emails
        # are registered. Kept as-is; see DESIGN.md.
        try:
            user = log_in(ctx, email=email, password=password)
        except IdentityNotFound:
            return _form_error("Email not found")
        except CredentialMismatch:
            return _form_error("Incorrect password")
        except StorageError:
            logger.exception("Login failed")
            return _form_error(GENERIC_ERROR)

        _start_authenticated_session(request, ctx, user)
        return RedirectResponse(url="/members", status_code=303)

    @app.get("/logout")
    def logout(request: Request, ctx: AppContext = Depends(get_context)):
        ctx.sessions.destroy(request.state.session_token)
        resp = RedirectResponse(url="/", status_code=303)
        resp.delete_cookie(settings.cookie_name)
        return resp

    @app.get("/members", response_class=HTMLResponse)
    def members(request: Request, session: SessionState = Depends(require_session)):
        return _render(request, "members.html", {"title": "Members", "name": session.name})

    @app.get("/admin", response_class=HTMLResponse)
    def admin(
        request: Request,
        session: SessionState = Depends(require_admin),
        ctx: AppContext = Depends(get_context),
    ):
        if permission_denied(request):
            return _render_forbidden(request)
        return _render(request, "admin.html", {"title": "Admin", "users": ctx.users.list_users(), "error": None})

    def _set_role_and_return(request: Request, ctx: AppContext, user_id: str, role: str):
        if permission_denied(request):
            return _render_forbidden(request)
        try:
            change_role(ctx, user_id, role)
        except UserNotFound:
            logger.warning("Role change to %s for unknown user id %s", role, user_id)
        return RedirectResponse(url="/admin", status_code=303)

    @app.get("/promote/{user_id}")
    def promote(
        request: Request,
        user_id: str,
        session: SessionState = Depends(require_admin),
        ctx: AppContext = Depends(get_context),
    ):
        return _set_role_and_return(request, ctx, user_id, ROLE_ADMIN)

    @app.get("/demote/{user_id}")
    def demote(
        request: Request,
        user_id: str,
        session: SessionState = Depends(require_admin),
        ctx: AppContext = Depends(get_context),
    ):
        return _set_role_and_return(request, ctx, user_id, ROLE_USER)

    return app
