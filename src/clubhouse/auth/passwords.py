# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from clubhouse.core.errors import HashCorrupted


class CredentialHasher:
    """Salted argon2id hashing with a tunable work factor.

    Salt and cost parameters are embedded in the hash string, so ``verify``
    keeps working for hashes produced with older settings.
    """

    def __init__(self, *, time_cost: int, memory_cost: int, parallelism: int):
        self._ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, plain: str) -> str:
        if not plain:
            raise ValueError("Empty password")
        return self._ph.hash(plain)

    def verify(self, plain: str, hash_value: str) -> bool:
        if not plain:
            return False
        try:
            return self._ph.verify(hash_value, plain)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            raise HashCorrupted("Stored password hash is malformed") from exc
