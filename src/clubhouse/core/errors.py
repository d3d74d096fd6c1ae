# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the stores, the account service and the routes.

Most of these are recovered close to where they happen (a form is re-rendered
with a message). ``StorageError`` is the exception that reaches the route
boundary: it is logged and the user only sees a generic message.
"""

from __future__ import annotations


class ClubhouseError(Exception):
    """Base class for every error raised by the application."""


class ValidationFailed(ClubhouseError):
    """Signup input is malformed. ``str(exc)`` is the first validation message."""


class DuplicateIdentity(ClubhouseError):
    def __init__(self, identity: str):
        super().__init__(f"Identity already registered: {identity}")
        self.identity = identity


class IdentityNotFound(ClubhouseError):
    def __init__(self, identity: str):
        super().__init__(f"No user with identity: {identity}")
        self.identity = identity


class CredentialMismatch(ClubhouseError):
    """Password does not match the stored hash."""


class UserNotFound(ClubhouseError):
    def __init__(self, user_id: str):
        super().__init__(f"No user with id: {user_id}")
        self.user_id = user_id


class InvalidRole(ClubhouseError, ValueError):
    def __init__(self, role: object):
        super().__init__(f"Unsupported role: {role!r}")
        self.role = role


class StorageError(ClubhouseError):
    """The credential store could not be read or written."""


class HashCorrupted(StorageError):
    """A stored password hash could not be parsed."""
