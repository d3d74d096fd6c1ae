#!/usr/bin/env python3
"""Create a user or change the role of an existing one, straight in users.yml.

This is how the first admin gets bootstrapped: sign up through the web UI (or
here) and then run this script with the same email and role ``admin``.
Sessions that are already open keep their old role until the user logs in again.
"""
from __future__ import annotations

from getpass import getpass

from clubhouse.auth.passwords import CredentialHasher
from clubhouse.auth.users import ROLES, UserStore
from clubhouse.core.config import load_settings


def main() -> None:
    settings = load_settings()
    store = UserStore(settings.users_path)
    store.open()

    email = input("Email: ").strip()
    role = (input("Role [user/admin]: ").strip().lower() or "user")
    if role not in ROLES:
        raise SystemExit(f"Unknown role: {role}")

    user = store.find_by_identity(email)
    if user is None:
        name = input("Name: ").strip()
        pw1 = getpass("Password: ")
        pw2 = getpass("Repeat password: ")
        if pw1 != pw2:
            raise SystemExit("Passwords do not match")
        hasher = CredentialHasher(
            time_cost=settings.hash_time_cost,
            memory_cost=settings.hash_memory_cost,
            parallelism=settings.hash_parallelism,
        )
        user = store.create(email, name, hasher.hash(pw1))

    user = store.set_role(user.id, role)
    print(f"OK -> {user.email} ({user.role}) in {store.path}")


if __name__ == "__main__":
    main()
