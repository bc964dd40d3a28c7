# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


def _flag(value: str) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y"}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # ===== MongoDB =====
    mongodb_scheme: str = "mongodb+srv"
    mongodb_host: str = ""
    mongodb_user: str = ""
    mongodb_password: str = ""
    mongodb_database: str = "memberarea"

    # ===== Sessions =====
    # payload encryption at rest / cookie signing
    mongodb_session_secret: str = ""
    session_secret: str = ""
    session_max_age: int = 3600  # 1 hour
    cookie_name: str = "memberarea_session"
    cookie_secure: bool = False

    # ===== Misc =====
    password_hash_rounds: int = 12
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            mongodb_scheme=os.getenv("MONGODB_SCHEME", "mongodb+srv"),
            mongodb_host=os.getenv("MONGODB_HOST", ""),
            mongodb_user=os.getenv("MONGODB_USER", ""),
            mongodb_password=os.getenv("MONGODB_PASSWORD", ""),
            mongodb_database=os.getenv("MONGODB_DATABASE", "memberarea"),
            mongodb_session_secret=os.getenv("MONGODB_SESSION_SECRET", ""),
            session_secret=os.getenv("SESSION_SECRET", ""),
            session_max_age=int(os.getenv("SESSION_MAX_AGE", "3600")),
            cookie_name=os.getenv("SESSION_COOKIE_NAME", "memberarea_session"),
            cookie_secure=_flag(os.getenv("SESSION_COOKIE_SECURE", "false")),
            password_hash_rounds=int(os.getenv("PASSWORD_HASH_ROUNDS", "12")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("MEMBERAREA_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            reload=_flag(os.getenv("MEMBERAREA_RELOAD", "false")),
        )

    @property
    def mongodb_uri(self) -> str:
        if not self.mongodb_host:
            return ""
        creds = ""
        if self.mongodb_user:
            creds = quote_plus(self.mongodb_user)
            if self.mongodb_password:
                creds += ":" + quote_plus(self.mongodb_password)
            creds += "@"
        return f"{self.mongodb_scheme}://{creds}{self.mongodb_host}/{self.mongodb_database}"

    def require_secrets(self) -> None:
        if not self.session_secret:
            raise RuntimeError("SESSION_SECRET is not configured")
        if not self.mongodb_session_secret:
            raise RuntimeError("MONGODB_SESSION_SECRET is not configured")

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
