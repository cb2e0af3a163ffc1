"""
API request and response models for the ratings service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
ratings/models.py, which own the internal domain representation. Input models
build domain objects with to_domain(); output models are built from them with
from_domain().

JSON field names are camelCase ("firstName", "roleId"); the alias generator
maps them to the snake_case attributes. Passwords are accepted on input and
have no field on any output model.

Separation of concerns: auth/ and ratings/ models = domain truth; api/ models = API contract.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import USER_ROLE_ID, Role, User
from auth.permissions import decode_permissions, encode_permissions
from ratings.models import Rating

_INPUT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_OUTPUT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class RoleRequest(BaseModel):
    """Body of POST /roles/ and PUT /roles/{id}.

    An unknown permission name fails request validation, which the API
    renders as 400 invalid_json.
    """

    model_config = _INPUT_CONFIG

    label: str = ""
    permissions: list[str] = Field(default_factory=list)

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, names: list[str]) -> list[str]:
        decode_permissions(names)
        return names

    def to_domain(self, role_id: int = 0) -> Role:
        return Role(id=role_id, label=self.label, permissions=decode_permissions(self.permissions))


class RoleResponse(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: int
    label: str
    permissions: list[str]

    @classmethod
    def from_domain(cls, role: Role) -> "RoleResponse":
        return cls(id=role.id, label=role.label, permissions=encode_permissions(role.permissions))


class RoleList(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[RoleResponse]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserRequest(BaseModel):
    """Body of POST /users/ and PUT /users/{id}.

    On update an empty password keeps the current one.
    """

    model_config = _INPUT_CONFIG

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    password: str = ""
    role_id: int = USER_ROLE_ID
    active: bool = True
    settings: str = ""

    def to_domain(self, user_id: int = 0) -> User:
        return User(
            id=user_id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            password=self.password,
            role_id=self.role_id,
            active=self.active,
            settings=self.settings,
        )


class UserResponse(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: int
    active: bool
    email: str
    first_name: str
    last_name: str
    role_id: int
    role: Optional[RoleResponse] = None
    settings: str = ""

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            active=user.active,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role_id=user.role_id,
            role=RoleResponse.from_domain(user.role) if user.role is not None else None,
            settings=user.settings,
        )


class UserList(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[UserResponse]


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


class RatingRequest(BaseModel):
    """Body of POST /ratings/ and PUT /ratings/{id}.

    Any userId or date sent by the client is ignored: the owner is the
    caller and the date is set by the server. On update target is ignored
    as well.
    """

    model_config = _INPUT_CONFIG

    score: int = 0
    target: int = 0
    comment: str = ""
    extra: Any = Field(default_factory=dict)
    active: bool = True
    anonymous: bool = True

    def to_domain(self, caller: User, rating_id: int = 0) -> Rating:
        return Rating(
            id=rating_id,
            score=self.score,
            target=self.target,
            comment=self.comment,
            extra=json.dumps(self.extra, separators=(",", ":")),
            active=self.active,
            anonymous=self.anonymous,
            user=caller,
        )


class RatingResponse(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: int
    active: bool
    anonymous: bool
    comment: str
    date: int
    extra: Any
    score: int
    target: int
    user_id: int

    @classmethod
    def from_domain(cls, rating: Rating) -> "RatingResponse":
        return cls(
            id=rating.id,
            active=rating.active,
            anonymous=rating.anonymous,
            comment=rating.comment,
            date=rating.date,
            extra=json.loads(rating.extra or "{}"),
            score=rating.score,
            target=rating.target,
            user_id=rating.user_id,
        )


class RatingList(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[RatingResponse]


# ---------------------------------------------------------------------------
# Token endpoint and health
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Successful response of POST /api/v1/oauth/token/ (RFC 6749 section 5.1)."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
