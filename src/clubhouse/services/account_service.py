# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from pydantic import BaseModel, EmailStr, Field, ValidationError

from clubhouse.auth.users import UserRecord
from clubhouse.context import AppContext
from clubhouse.core.errors import CredentialMismatch, DuplicateIdentity, IdentityNotFound, ValidationFailed

logger = logging.getLogger(__name__)


class SignupForm(BaseModel):
    """Signup input. Field order is the order errors are reported in."""

    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)


def _first_error_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "input"
    return f"{field}: {err.get('msg', 'invalid value')}"


def validate_signup(*, name: str, email: str, password: str) -> SignupForm:
    email = (email or "").strip()
    try:
        form = SignupForm(name=(name or "").strip(), email=email, password=password or "")
    except ValidationError as exc:
        raise ValidationFailed(_first_error_message(exc)) from exc
    # EmailStr lowercases the domain; keep the address as typed since login
    # looks it up by exact match.
    return form.model_copy(update={"email": email})


def register(ctx: AppContext, form: SignupForm) -> UserRecord:
    """Create a user with role ``user``.

    The early lookup only avoids hashing for an email that is already taken;
    ``UserStore.create`` repeats the check under its write lock.
    """
    email = str(form.email)
    if ctx.users.find_by_identity(email) is not None:
        raise DuplicateIdentity(email)
    password_hash = ctx.hasher.hash(form.password)
    return ctx.users.create(email, form.name, password_hash)


def log_in(ctx: AppContext, *, email: str, password: str) -> UserRecord:
    email = (email or "").strip()
    user = ctx.users.find_by_identity(email)
    if user is None:
        logger.info("Login rejected: unknown email %s", email)
        raise IdentityNotFound(email)
    if not ctx.hasher.verify(password or "", user.password_hash):
        logger.info("Login rejected: wrong password for user %s", user.id)
        raise CredentialMismatch(email)
    return user


def change_role(ctx: AppContext, user_id: str, role: str) -> UserRecord:
    return ctx.users.set_role(user_id, role)
