# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request

from memberarea.auth.session import SessionData
from memberarea.auth.users import UserRecord

FORBIDDEN_MESSAGE = "403 Forbidden - You are not authorized."


def current_session(request: Request) -> Optional[SessionData]:
    return getattr(request.state, "session", None)


def session_user(request: Request) -> Optional[UserRecord]:
    """Stored record behind the current session, looked up by id (emails are not unique)."""
    sess = current_session(request)
    if not sess or not sess.authenticated or not sess.user_id:
        return None
    return request.app.state.users.find_by_id(sess.user_id)


def require_auth(request: Request) -> SessionData:
    sess = current_session(request)
    if sess and sess.authenticated:
        return sess
    raise HTTPException(status_code=302, headers={"Location": "/login"})


def require_admin(request: Request, sess: SessionData = Depends(require_auth)) -> SessionData:
    # role is re-read from the store so promotions/demotions apply without re-login
    user = session_user(request)
    if not user or not user.is_admin:
        raise HTTPException(status_code=403, detail=FORBIDDEN_MESSAGE)
    return sess
