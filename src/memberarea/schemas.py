# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Declared shapes of the signup and login form payloads."""

from __future__ import annotations

from typing import List, Mapping, Type

from pydantic import BaseModel, EmailStr, Field, ValidationError


class SignupForm(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


def invalid_fields(schema: Type[BaseModel], data: Mapping[str, object]) -> List[str]:
    """Return every field of ``schema`` that ``data`` violates, in declaration order.

    pydantic validates all fields before raising, so one pass reports them all.
    """
    try:
        schema.model_validate(dict(data))
    except ValidationError as exc:
        bad = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        return [f for f in schema.model_fields if f in bad]
    return []
