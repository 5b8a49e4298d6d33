"""
Bearer and refresh token issuance.

Tokens are compact JWS (header.claims.signature) signed with HS256. The key is
the issuing client's own secret rather than a server-wide secret, so only
parties holding that client's secret can verify its tokens. Secrets of any
length are accepted.

Claims:
    sub: user id
    aud: client domain
    scope: space-delimited scope string, exactly as requested
    jti: ULID, unique per token
    iss: issuer configured on the token factory
    iat: issue time (unix seconds)
    exp: iat + the client's lifetime for the token kind
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

import jwt
from ulid import ULID

from social.graze.credmodel.errors import InvalidToken, SigningError
from social.graze.credmodel.records import ClientProjection, ClientRef, UserProjection

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"


def client_signing_key(secret: Optional[str]) -> bytes:
    """HMAC key bytes for a client secret."""
    if not secret:
        raise SigningError.missing_secret()
    return secret.encode("utf-8")


class TokenFactory:
    def __init__(self, issuer: str) -> None:
        self.issuer = issuer

    def create_claims(
        self,
        client: ClientProjection,
        user: UserProjection,
        scope: Optional[str],
        lifetime: int,
        issued_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        if issued_at is None:
            issued_at = datetime.now(timezone.utc)

        iat = int(issued_at.timestamp())
        return {
            "sub": user.id,
            "aud": client.domain,
            "scope": scope,
            "jti": str(ULID()),
            "iss": self.issuer,
            "iat": iat,
            "exp": iat + int(lifetime),
        }

    def sign(self, client: ClientProjection, claims: Dict[str, Any]) -> str:
        key = client_signing_key(client.secret)
        try:
            return jwt.encode(
                claims,
                key,
                algorithm=SIGNING_ALGORITHM,
                headers={"typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.exception("Unable to sign token for client %s", client.id)
            raise SigningError.failed(str(e)) from e

    def generate_access_token(
        self,
        client: ClientProjection,
        user: UserProjection,
        scope: Optional[str],
        issued_at: Optional[datetime] = None,
    ) -> str:
        claims = self.create_claims(
            client, user, scope, client.access_token_lifetime, issued_at
        )
        return self.sign(client, claims)

    def generate_refresh_token(
        self,
        client: ClientProjection,
        user: UserProjection,
        scope: Optional[str],
        issued_at: Optional[datetime] = None,
    ) -> str:
        claims = self.create_claims(
            client, user, scope, client.refresh_token_lifetime, issued_at
        )
        return self.sign(client, claims)

    def decode_token(self, client: ClientRef | ClientProjection, token: str) -> Dict[str, Any]:
        """Verify `token` against the client's secret and return its claims.

        Signature, issuer, audience and expiry are all checked.
        """
        try:
            key = client_signing_key(client.secret)
        except SigningError as e:
            raise InvalidToken.bad_signature(str(e)) from e

        try:
            return jwt.decode(
                token,
                key,
                algorithms=[SIGNING_ALGORITHM],
                issuer=self.issuer,
                audience=client.domain or None,
                options={
                    "require": ["exp", "iss"],
                    "verify_aud": bool(client.domain),
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidToken.bad_signature(str(e)) from e
