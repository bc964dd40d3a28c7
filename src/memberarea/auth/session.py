# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import base64
import hashlib
import json
import secrets
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from cryptography.fernet import Fernet, InvalidToken
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from loguru import logger
from pymongo.collection import Collection

DEFAULT_MAX_AGE_SECONDS = 60 * 60  # 1 hour
_SALT = "memberarea.session.v1"


@dataclass(frozen=True)
class SessionData:
    authenticated: bool
    name: str
    email: str
    role: str
    user_id: str = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _fernet_key(secret: str) -> bytes:
    # Fernet wants 32 url-safe base64 bytes; accept any passphrase
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def _serializer(secret: str) -> URLSafeTimedSerializer:
    if not secret:
        raise RuntimeError("SESSION_SECRET is not configured")
    return URLSafeTimedSerializer(secret_key=secret, salt=_SALT)


def sign_session_id(session_id: str, *, secret: str) -> str:
    return _serializer(secret).dumps({"sid": session_id})


def unsign_session_id(token: str, *, secret: str, max_age: int = DEFAULT_MAX_AGE_SECONDS) -> Optional[str]:
    if not token:
        return None
    s = _serializer(secret)
    try:
        data = s.loads(token, max_age=max_age)
    except (BadSignature, BadTimeSignature):
        return None
    sid = str((data or {}).get("sid") or "").strip()
    return sid or None


class SessionStore:
    """Server-side session records in the ``sessions`` collection.

    Each row holds the Fernet-encrypted payload and an ``expires_at`` timestamp.
    A TTL index lets MongoDB reap stale rows; expiry is also enforced on load
    because the TTL monitor only runs periodically.
    """

    def __init__(
        self,
        collection: Collection,
        *,
        encryption_secret: str,
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not encryption_secret:
            raise RuntimeError("MONGODB_SESSION_SECRET is not configured")
        self._col = collection
        self._fernet = Fernet(_fernet_key(encryption_secret))
        self.max_age = int(max_age)
        self._clock = clock

    def ensure_indexes(self) -> None:
        self._col.create_index("expires_at", expireAfterSeconds=0)

    def _expiry(self) -> datetime:
        return self._clock() + timedelta(seconds=self.max_age)

    def create(self, data: SessionData) -> str:
        sid = secrets.token_urlsafe(32)
        payload = self._fernet.encrypt(json.dumps(asdict(data)).encode("utf-8")).decode("utf-8")
        self._col.insert_one({"_id": sid, "payload": payload, "expires_at": self._expiry()})
        return sid

    def load(self, sid: str) -> Optional[SessionData]:
        if not sid:
            return None
        doc = self._col.find_one({"_id": sid})
        if not doc:
            return None
        expires_at = doc.get("expires_at")
        if isinstance(expires_at, datetime):
            # pymongo hands back naive UTC datetimes by default
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= self._clock():
                self.destroy(sid)
                return None
        try:
            raw = json.loads(self._fernet.decrypt(str(doc.get("payload") or "").encode("utf-8")))
        except (InvalidToken, ValueError):
            logger.warning("Discarding undecryptable session {}", sid[:8])
            return None
        return SessionData(
            authenticated=bool(raw.get("authenticated")),
            name=str(raw.get("name") or ""),
            email=str(raw.get("email") or ""),
            role=str(raw.get("role") or ""),
            user_id=str(raw.get("user_id") or ""),
        )

    def touch(self, sid: str) -> None:
        self._col.update_one({"_id": sid}, {"$set": {"expires_at": self._expiry()}})

    def destroy(self, sid: str) -> None:
        self._col.delete_one({"_id": sid})
