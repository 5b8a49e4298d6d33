"""
Credential Model

CredentialModel is the façade an OAuth2 grant-flow orchestrator calls for every
state transition: issuing tokens, looking up codes, tokens, clients and users,
saving what it issued, revoking, and checking scopes.

Policies:
- Composite lookups (tokens and codes) resolve the record, its client and its
  user. If any of the three is missing the call raises NotFound.
- A wrong client secret is indistinguishable from an unknown client id; both
  raise the same NotFound.
- A wrong password, an unknown user or a hasher failure all return None from
  `get_user`.
- Revoking something that is already gone returns False.
- StoreUnavailable propagates untouched. Retry policy belongs to the caller.

The model holds no mutable state of its own, so one instance can serve any
number of concurrent requests.
"""

import asyncio
import functools
import hmac
from datetime import datetime, timezone
import logging
from time import time
from typing import Any, Mapping, Optional, Tuple, Union

from social.graze.credmodel.config import ModelOptions, load_options
from social.graze.credmodel.errors import ConfigurationError, NotFound
from social.graze.credmodel.metrics import MetricsClient, NoOpMetricsClient
from social.graze.credmodel.password import PasswordHasher
from social.graze.credmodel.records import (
    AccessTokenRecord,
    AuthorizationCodeRecord,
    ClientProjection,
    ClientRef,
    CodeDraft,
    RefreshTokenRecord,
    TokenDraft,
    TokenRecord,
    UserProjection,
)
from social.graze.credmodel.schema.client import OAuth2Client
from social.graze.credmodel.scope import verify_scope as check_scope
from social.graze.credmodel.store import CredentialStore, as_utc
from social.graze.credmodel.tokens import TokenFactory

logger = logging.getLogger(__name__)


def timed(operation: str):
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self: "CredentialModel", *args, **kwargs):
            start_time = time()
            try:
                return await fn(self, *args, **kwargs)
            finally:
                self.metrics.timer(
                    "credmodel.operation.time",
                    time() - start_time,
                    tag_dict={"operation": operation},
                )

        return wrapper

    return decorator


def _require_future(name: str, value: Optional[datetime]) -> datetime:
    if value is None:
        raise ValueError(f"{name} is required")
    value = as_utc(value).astimezone(timezone.utc)
    if value <= datetime.now(timezone.utc):
        raise ValueError(f"{name} must be in the future")
    return value


class CredentialModel:
    def __init__(
        self,
        options: Union[ModelOptions, Mapping[str, Any], None],
        store: Optional[CredentialStore],
        password_hasher: Optional[PasswordHasher],
        metrics: Optional[MetricsClient] = None,
    ) -> None:
        opts = load_options(options)
        if store is None:
            raise ConfigurationError.missing("store")
        if password_hasher is None:
            raise ConfigurationError.missing("password_hasher")

        self.issuer = opts.issuer
        self.user_model = opts.user_model
        self.store = store
        self.password_hasher = password_hasher
        self._dummy_hash = password_hasher.dummy_hash()
        self.metrics = metrics or NoOpMetricsClient()
        self.token_factory = TokenFactory(opts.issuer)

    def _miss(self, kind: str) -> None:
        self.metrics.increment("credmodel.lookup.miss", 1, tag_dict={"kind": kind})

    @staticmethod
    def _project_client(row: OAuth2Client) -> ClientProjection:
        return ClientProjection(
            id=row.client_id,
            secret=row.client_secret,
            redirect_uris=list(row.redirect_uris or []),
            grants=list(row.grants or []),
            access_token_lifetime=row.access_token_lifetime,
            refresh_token_lifetime=row.refresh_token_lifetime,
            domain=row.domain,
        )

    async def _resolve_owner(
        self, client_id: str, user_id: str
    ) -> Tuple[ClientRef, UserProjection]:
        client = await self.store.find_client(client_id)
        if client is None:
            self._miss("client")
            raise NotFound.client()

        user = await self.user_model.find_by_id(user_id)
        if user is None:
            self._miss("user")
            raise NotFound.user()

        return self._project_client(client).ref(), user.project()

    # Issuance

    @timed("generate_access_token")
    async def generate_access_token(
        self, client: ClientProjection, user: UserProjection, scope: Optional[str]
    ) -> str:
        token = self.token_factory.generate_access_token(client, user, scope)
        self.metrics.increment("credmodel.token.issued", 1, tag_dict={"kind": "access"})
        return token

    @timed("generate_refresh_token")
    async def generate_refresh_token(
        self, client: ClientProjection, user: UserProjection, scope: Optional[str]
    ) -> str:
        token = self.token_factory.generate_refresh_token(client, user, scope)
        self.metrics.increment("credmodel.token.issued", 1, tag_dict={"kind": "refresh"})
        return token

    # Lookups

    @timed("get_access_token")
    async def get_access_token(self, access_token: str) -> AccessTokenRecord:
        token = await self.store.find_token_by_access(access_token)
        if token is None:
            self._miss("access_token")
            raise NotFound.access_token()

        client, user = await self._resolve_owner(token.client_id, token.user_id)
        return AccessTokenRecord(
            access_token=token.access_token,
            access_token_expires_at=as_utc(token.access_token_expires_at),
            scope=token.scope,
            user=user,
            client=client,
        )

    @timed("get_refresh_token")
    async def get_refresh_token(self, refresh_token: str) -> RefreshTokenRecord:
        token = await self.store.find_token_by_refresh(refresh_token)
        if token is None or token.refresh_token is None:
            self._miss("refresh_token")
            raise NotFound.refresh_token()

        client, user = await self._resolve_owner(token.client_id, token.user_id)
        return RefreshTokenRecord(
            refresh_token=token.refresh_token,
            refresh_token_expires_at=as_utc(token.refresh_token_expires_at),
            scope=token.scope,
            user=user,
            client=client,
        )

    @timed("get_authorization_code")
    async def get_authorization_code(self, code: str) -> AuthorizationCodeRecord:
        row = await self.store.find_code(code)
        if row is None:
            self._miss("authorization_code")
            raise NotFound.authorization_code()

        client, user = await self._resolve_owner(row.client_id, row.user_id)
        return AuthorizationCodeRecord(
            code=row.code,
            expires_at=as_utc(row.expires_at),
            redirect_uri=row.redirect_uri,
            scope=row.scope,
            user=user,
            client=client,
        )

    @timed("get_client")
    async def get_client(
        self, client_id: str, client_secret: Optional[str] = None
    ) -> ClientProjection:
        row = await self.store.find_client(client_id)

        if client_secret:
            # Compare even when the client is unknown so both failures cost the same.
            stored = row.client_secret if row is not None else ""
            matched = hmac.compare_digest(
                stored.encode("utf-8"), client_secret.encode("utf-8")
            )
            if row is None or not matched:
                self._miss("client")
                raise NotFound.client()
        elif row is None:
            self._miss("client")
            raise NotFound.client()

        return self._project_client(row)

    @timed("get_user")
    async def get_user(self, username: str, password: str) -> Optional[UserProjection]:
        user = await self.user_model.find_by_login(username)
        # Unknown logins still pay for a verify so they cannot be told apart by timing.
        hashed = user.password_hash if user is not None else self._dummy_hash

        try:
            matched = await asyncio.to_thread(self.password_hasher.verify, password, hashed)
        except Exception:
            logger.exception("Password verification failed")
            matched = False

        if user is None:
            self._miss("user")
            return None
        if not matched:
            return None
        return user.project()

    @timed("get_user_from_client")
    async def get_user_from_client(
        self, client: Union[ClientProjection, ClientRef]
    ) -> UserProjection:
        row = await self.store.find_client(client.id)
        if row is None:
            self._miss("client")
            raise NotFound.client()

        if row.user_id is None:
            self._miss("user")
            raise NotFound.user()

        user = await self.user_model.find_by_id(row.user_id)
        if user is None:
            self._miss("user")
            raise NotFound.user()
        return user.project()

    # Persistence

    @timed("save_token")
    async def save_token(
        self,
        token: Union[TokenDraft, Mapping[str, Any]],
        client: Union[ClientProjection, ClientRef],
        user: UserProjection,
    ) -> TokenRecord:
        draft = token if isinstance(token, TokenDraft) else TokenDraft.from_mapping(token)
        if not draft.access_token:
            raise ValueError("access_token is required")
        access_token_expires_at = _require_future(
            "access_token_expires_at", draft.access_token_expires_at
        )
        refresh_token_expires_at = None
        if draft.refresh_token:
            refresh_token_expires_at = _require_future(
                "refresh_token_expires_at", draft.refresh_token_expires_at
            )

        await self.store.insert_token(
            access_token=draft.access_token,
            access_token_expires_at=access_token_expires_at,
            refresh_token=draft.refresh_token or None,
            refresh_token_expires_at=refresh_token_expires_at,
            scope=draft.scope,
            client_id=client.id,
            user_id=user.id,
        )

        return TokenRecord(
            access_token=draft.access_token,
            access_token_expires_at=access_token_expires_at,
            refresh_token=draft.refresh_token or None,
            refresh_token_expires_at=refresh_token_expires_at,
            scope=draft.scope,
            user=user,
            client=ClientRef(id=client.id, secret=client.secret, domain=client.domain),
        )

    @timed("save_authorization_code")
    async def save_authorization_code(
        self,
        code: Union[CodeDraft, Mapping[str, Any]],
        client: Union[ClientProjection, ClientRef],
        user: UserProjection,
    ) -> None:
        draft = code if isinstance(code, CodeDraft) else CodeDraft.from_mapping(code)
        if not draft.code:
            raise ValueError("code is required")
        if not draft.redirect_uri:
            raise ValueError("redirect_uri is required")

        await self.store.insert_code(
            code=draft.code,
            expires_at=_require_future("expires_at", draft.expires_at),
            redirect_uri=draft.redirect_uri,
            scope=draft.scope,
            client_id=client.id,
            user_id=user.id,
        )

    # Revocation

    @timed("revoke_token")
    async def revoke_token(self, token: Union[str, RefreshTokenRecord]) -> bool:
        """Delete the token pair owning `token`, its refresh token string or record."""
        refresh_token = token if isinstance(token, str) else token.refresh_token
        revoked = await self.store.delete_token_by_refresh(refresh_token)
        self.metrics.increment(
            "credmodel.revoke", 1, tag_dict={"kind": "token", "revoked": revoked}
        )
        return revoked

    @timed("revoke_authorization_code")
    async def revoke_authorization_code(
        self, code: Union[str, AuthorizationCodeRecord]
    ) -> bool:
        """
        Consume an authorization code.

        Only one caller ever observes True for a given code, however many race
        to exchange it.
        """
        code_value = code if isinstance(code, str) else code.code
        revoked = await self.store.delete_code(code_value)
        self.metrics.increment(
            "credmodel.revoke", 1, tag_dict={"kind": "code", "revoked": revoked}
        )
        if not revoked:
            logger.info("Authorization code already consumed or unknown")
        return revoked

    # Scope

    @timed("verify_scope")
    async def verify_scope(self, token: Any, scope: Optional[str]) -> bool:
        return check_scope(token, scope)
