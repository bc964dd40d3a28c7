# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- User records stored in the MongoDB ``users`` collection
- Server-side sessions with signed cookie tokens (itsdangerous)
"""
