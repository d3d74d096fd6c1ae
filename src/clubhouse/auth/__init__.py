# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication building blocks.

This package provides:
- Password hashing/verification (argon2)
- Credential store backed by data/users.yml
- Server-side sessions keyed by a signed cookie token (itsdangerous)
"""
