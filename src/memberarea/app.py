# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from memberarea.auth.passwords import hash_password, verify_password
from memberarea.auth.session import SessionData, SessionStore, sign_session_id, unsign_session_id
from memberarea.auth.users import ROLE_ADMIN, ROLE_USER, UserRecord, UserStore
from memberarea.config import Settings
from memberarea.db import get_database
from memberarea.permissions import current_session, require_admin, require_auth, session_user
from memberarea.schemas import LoginForm, SignupForm, invalid_fields

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

MEMBER_IMAGES = ("1.svg", "2.svg", "3.svg")

SIGNUP_ERROR = "We could not create your account. Please try again."
LOGIN_INVALID_INPUT = "Invalid email or password."
LOGIN_NOT_FOUND = "User and password not found."
LOGIN_BAD_PASSWORD = "Invalid password."

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session and whether it may see the admin area."""
    user = session_user(request)
    base_ctx = {"current_session": current_session(request), "show_admin": bool(user and user.is_admin)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _set_session_cookie(response, settings: Settings, session_id: str) -> None:
    response.set_cookie(
        settings.cookie_name,
        sign_session_id(session_id, secret=settings.session_secret),
        max_age=settings.session_max_age,
        **settings.cookie_settings(),
    )


def _start_session(request: Request, response, user: UserRecord) -> None:
    """Replace any current session with an authenticated one for ``user``."""
    settings: Settings = request.app.state.settings
    sessions: SessionStore = request.app.state.sessions
    previous = getattr(request.state, "session_id", None)
    if previous:
        sessions.destroy(previous)
    sid = sessions.create(
        SessionData(authenticated=True, name=user.name, email=user.email, role=user.role, user_id=user.id)
    )
    request.state.session_id = sid
    _set_session_cookie(response, settings, sid)


# ------------------ Routes ------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    sess = current_session(request)
    return _render(request, "index.html", {"name": sess.name if sess else None})


@router.get("/signup", response_class=HTMLResponse)
def signup_get(request: Request, name: str = "", email: str = "", password: str = ""):
    flags = {"name": name == "true", "email": email == "true", "password": password == "true"}
    return _render(request, "signup.html", {"flags": flags, "error": ""})


@router.post("/signup")
def signup_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
):
    bad = invalid_fields(SignupForm, {"name": name, "email": email, "password": password})
    if bad:
        return RedirectResponse(url="/signup?" + urlencode({f: "true" for f in bad}), status_code=302)

    users: UserStore = request.app.state.users
    settings: Settings = request.app.state.settings
    password_hash = hash_password(password, rounds=settings.password_hash_rounds)
    try:
        user = users.create(name=name, email=email, password_hash=password_hash, role=ROLE_USER)
    except PyMongoError:
        logger.exception("Could not create user {}", email)
        return _render(request, "signup.html", {"flags": {}, "error": SIGNUP_ERROR}, status_code=500)

    resp = RedirectResponse(url="/members", status_code=302)
    _start_session(request, resp, user)
    return resp


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request):
    sess = current_session(request)
    if sess and sess.authenticated:
        return RedirectResponse(url="/members", status_code=302)
    return _render(request, "login.html", {"error": "", "show_signup": False})


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
):
    if invalid_fields(LoginForm, {"email": email, "password": password}):
        return _render(request, "login.html", {"error": LOGIN_INVALID_INPUT, "show_signup": True})

    users: UserStore = request.app.state.users
    user = users.find_by_email(email)
    if not user:
        logger.info("Login for unknown email {}", email)
        return _render(request, "login.html", {"error": LOGIN_NOT_FOUND, "show_signup": True})

    if not verify_password(user.password_hash, password):
        logger.info("Wrong password for user {}", user.id)
        return _render(request, "login.html", {"error": LOGIN_BAD_PASSWORD, "show_signup": False})

    resp = RedirectResponse(url="/members", status_code=302)
    _start_session(request, resp, user)
    return resp


@router.get("/members", response_class=HTMLResponse)
def members(request: Request, sess: SessionData = Depends(require_auth)):
    image = random.choice(MEMBER_IMAGES)
    return _render(request, "members.html", {"name": sess.name, "image": image})


@router.get("/admin", response_class=HTMLResponse)
def admin(request: Request, sess: SessionData = Depends(require_admin)):
    users: UserStore = request.app.state.users
    return _render(request, "admin.html", {"users": users.find_all(), "admin_role": ROLE_ADMIN})


# Role changes stay on GET to keep the admin listing a plain list of links.
@router.get("/promote/{user_id}")
def promote(request: Request, user_id: str, sess: SessionData = Depends(require_admin)):
    request.app.state.users.set_role(user_id, ROLE_ADMIN)
    return RedirectResponse(url="/admin", status_code=302)


@router.get("/demote/{user_id}")
def demote(request: Request, user_id: str, sess: SessionData = Depends(require_admin)):
    request.app.state.users.set_role(user_id, ROLE_USER)
    return RedirectResponse(url="/admin", status_code=302)


@router.get("/logout")
def logout(request: Request):
    settings: Settings = request.app.state.settings
    sid = getattr(request.state, "session_id", None)
    if sid:
        try:
            request.app.state.sessions.destroy(sid)
        except PyMongoError as exc:
            logger.warning("Logout error: {}", exc)
    request.state.session_id = None
    resp = RedirectResponse(url="/", status_code=302)
    resp.delete_cookie(settings.cookie_name)
    return resp


# ------------------ App factory ------------------


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    settings.require_secrets()
    if database is None:
        database = get_database(settings)

    users = UserStore(database["users"])
    sessions = SessionStore(
        database["sessions"],
        encryption_secret=settings.mongodb_session_secret,
        max_age=settings.session_max_age,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await run_in_threadpool(sessions.ensure_indexes)
        except PyMongoError as exc:
            logger.error("Could not create session indexes: {}", exc)
        yield

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.users = users
    app.state.sessions = sessions

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        token = request.cookies.get(settings.cookie_name, "")
        sid = unsign_session_id(token, secret=settings.session_secret, max_age=settings.session_max_age)
        sess = None
        if sid:
            try:
                sess = await run_in_threadpool(sessions.load, sid)
            except PyMongoError:
                logger.exception("Session store unavailable")
                return PlainTextResponse("Internal Server Error", status_code=500)
        request.state.session_id = sid if sess else None
        request.state.session = sess

        response = await call_next(request)

        # sliding expiry: a live session that the handler kept is resaved and re-issued
        if sess and getattr(request.state, "session_id", None) == sid:
            try:
                await run_in_threadpool(sessions.touch, sid)
                _set_session_cookie(response, settings, sid)
            except PyMongoError as exc:
                logger.warning("Could not extend session: {}", exc)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        headers = exc.headers or {}
        if 300 <= exc.status_code < 400 and "Location" in headers:
            return RedirectResponse(url=headers["Location"], status_code=exc.status_code)
        if exc.status_code == 404:
            return await run_in_threadpool(_render, request, "404.html", None, 404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(PyMongoError)
    async def _database_error_handler(request: Request, exc: PyMongoError):
        logger.opt(exception=exc).error("Database error on {} {}", request.method, request.url.path)
        return PlainTextResponse("Internal Server Error", status_code=500)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)
    return app
