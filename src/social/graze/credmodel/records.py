"""
Records exchanged with the OAuth2 orchestrator.

The credential model never hands ORM rows across its boundary. Lookups are
projected into the frozen dataclasses below, and drafts coming from the
orchestrator are normalised into TokenDraft and CodeDraft before they reach the
store.

Orchestrators written against the camelCase contract (`accessToken`,
`authorizationCode`, `expiresAt`, ...) can pass plain mappings; `from_mapping`
accepts either spelling.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional


@dataclass(frozen=True)
class UserProjection:
    id: str
    username: str


@dataclass(frozen=True)
class ClientRef:
    """The slice of a client embedded in code and token records."""
    id: str
    secret: str = field(repr=False)
    domain: str


@dataclass(frozen=True)
class ClientProjection:
    """
    A client as returned by `get_client`.

    Attributes:
        id: Public client identifier
        secret: Client secret, also the signing key for the client's tokens
        redirect_uris: Redirect URIs registered for the client
        grants: Grant types the client may use
        access_token_lifetime: Access token lifetime in seconds
        refresh_token_lifetime: Refresh token lifetime in seconds
        domain: Audience placed in the `aud` claim
    """
    id: str
    secret: str = field(repr=False)
    redirect_uris: List[str]
    grants: List[str]
    access_token_lifetime: int
    refresh_token_lifetime: int
    domain: str

    def ref(self) -> ClientRef:
        return ClientRef(id=self.id, secret=self.secret, domain=self.domain)


@dataclass(frozen=True)
class AccessTokenRecord:
    access_token: str = field(repr=False)
    access_token_expires_at: datetime
    scope: str
    user: UserProjection
    client: ClientRef


@dataclass(frozen=True)
class RefreshTokenRecord:
    refresh_token: str = field(repr=False)
    refresh_token_expires_at: Optional[datetime]
    scope: str
    user: UserProjection
    client: ClientRef


@dataclass(frozen=True)
class AuthorizationCodeRecord:
    code: str = field(repr=False)
    expires_at: datetime
    redirect_uri: str
    scope: str
    user: UserProjection
    client: ClientRef


@dataclass(frozen=True)
class TokenRecord:
    """A freshly saved token pair echoed back to the orchestrator."""
    access_token: str = field(repr=False)
    access_token_expires_at: datetime
    refresh_token: Optional[str] = field(repr=False)
    refresh_token_expires_at: Optional[datetime]
    scope: str
    user: UserProjection
    client: ClientRef


def _pick(values: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in values:
            return values[key]
    return None


@dataclass(frozen=True)
class TokenDraft:
    access_token: str = field(repr=False)
    access_token_expires_at: datetime
    scope: str
    refresh_token: Optional[str] = field(default=None, repr=False)
    refresh_token_expires_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TokenDraft":
        return cls(
            access_token=_pick(values, "access_token", "accessToken"),
            access_token_expires_at=_pick(
                values, "access_token_expires_at", "accessTokenExpiresAt"
            ),
            scope=_pick(values, "scope") or "",
            refresh_token=_pick(values, "refresh_token", "refreshToken"),
            refresh_token_expires_at=_pick(
                values, "refresh_token_expires_at", "refreshTokenExpiresAt"
            ),
        )


@dataclass(frozen=True)
class CodeDraft:
    code: str = field(repr=False)
    expires_at: datetime
    redirect_uri: str
    scope: str

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "CodeDraft":
        return cls(
            code=_pick(values, "code", "authorization_code", "authorizationCode"),
            expires_at=_pick(values, "expires_at", "expiresAt"),
            redirect_uri=_pick(values, "redirect_uri", "redirectUri"),
            scope=_pick(values, "scope") or "",
        )
