from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AuthTokens(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str


class AuthUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None


class AuthState(BaseModel):
    """Immutable snapshot of the auth session store."""

    is_loading: bool = True
    is_authenticated: bool = False
    tokens: AuthTokens | None = None
    user: AuthUser | None = None
