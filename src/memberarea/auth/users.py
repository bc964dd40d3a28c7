# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger
from pymongo.collection import Collection

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str
    password_hash: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _from_doc(doc: dict) -> UserRecord:
    role = str(doc.get("role") or ROLE_USER).strip().lower()
    return UserRecord(
        id=str(doc["_id"]),
        name=str(doc.get("name") or ""),
        email=str(doc.get("email") or ""),
        password_hash=str(doc.get("password") or ""),
        role=role if role in ROLES else ROLE_USER,
    )


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(str(user_id))
    except (InvalidId, TypeError):
        return None


class UserStore:
    """User records in the ``users`` collection.

    Email is the login key but carries no unique index: when several records
    share an email, lookups return the first match in natural order.
    """

    def __init__(self, collection: Collection):
        self._col = collection

    def create(self, name: str, email: str, password_hash: str, role: str = ROLE_USER) -> UserRecord:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        doc = {"name": name, "email": email, "password": password_hash, "role": role}
        result = self._col.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Created user {} with role {}", result.inserted_id, role)
        return _from_doc(doc)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        e = (email or "").strip()
        if not e:
            return None
        doc = self._col.find_one({"email": e})
        return _from_doc(doc) if doc else None

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _from_doc(doc) if doc else None

    def find_all(self) -> List[UserRecord]:
        return [_from_doc(d) for d in self._col.find({})]

    def set_role(self, user_id: str, role: str) -> bool:
        """Set ``role`` on the matching record. Unknown ids are a no-op (returns False)."""
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        oid = _object_id(user_id)
        if oid is None:
            return False
        result = self._col.update_one({"_id": oid}, {"$set": {"role": role}})
        if not result.matched_count:
            logger.info("Role change to {} ignored, no user {}", role, user_id)
            return False
        logger.info("User {} role set to {}", user_id, role)
        return True

    def ensure_admin(self, name: str, email: str, password_hash: str) -> UserRecord:
        existing = self.find_by_email(email)
        if existing is None:
            return self.create(name, email, password_hash, role=ROLE_ADMIN)
        self.set_role(existing.id, ROLE_ADMIN)
        return self.find_by_id(existing.id) or existing
