# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

DEFAULT_ROUNDS = 12
# 19 MiB (OWASP argon2id floor) so that 12 passes stay in the tens of milliseconds
MEMORY_COST_KIB = 19 * 1024


@lru_cache(maxsize=4)
def _hasher(rounds: int) -> PasswordHasher:
    return PasswordHasher(time_cost=max(1, int(rounds)), memory_cost=MEMORY_COST_KIB)


def hash_password(plain: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _hasher(rounds).hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    # parameters are read back from the encoded hash, so any hasher verifies
    if not hash_value or not plain:
        return False
    try:
        return _hasher(DEFAULT_ROUNDS).verify(hash_value, plain)
    except (VerifyMismatchError, InvalidHashError):
        return False
