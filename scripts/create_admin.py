#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from memberarea.auth.passwords import hash_password
from memberarea.auth.users import UserStore
from memberarea.config import Settings
from memberarea.db import get_database


def main() -> None:
    settings = Settings.from_env()
    users = UserStore(get_database(settings)["users"])

    email = input("Email: ").strip()
    name = input("Name: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    # an existing account with this email keeps its password and is promoted
    pw_hash = hash_password(pw1, rounds=settings.password_hash_rounds)
    u = users.ensure_admin(name=name or email, email=email, password_hash=pw_hash)
    print(f"OK -> {u.email} ({u.role})")


if __name__ == "__main__":
    main()
