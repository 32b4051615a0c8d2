from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

_USERNAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")


def _check_username(value: str) -> str:
    if not _USERNAME_PATTERN.match(value):
        raise PydanticCustomError(
            "username_invalid_chars",
            "Username must start with a letter and contain only letters, digits or '_'",
            {"pattern": _USERNAME_PATTERN.pattern},
        )
    return value


class RegisterRequestDTO(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=10, max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Za-z]", value) or not re.search(r"\d", value):
            raise PydanticCustomError(
                "password_weak",
                "Password must contain at least one letter and one digit",
                {},
            )
        return value


class LoginRequestDTO(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=1, max_length=128)  # No strength check on login

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _check_username(value)


class AuthSuccessDTO(BaseModel):
    ok: bool = True


class IdentityDTO(BaseModel):
    authenticated: bool
    account_id: int | None = None
    username: str | None = None
