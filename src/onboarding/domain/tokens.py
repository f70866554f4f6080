"""
Session tokens - issuance and per-request re-authorization.

A token carries the principal id, its contact email, roles, and a snapshot
of profile fields so downstream authorization needs no second lookup.
Lifetimes are configured per variant.

The token alone never authorizes a request: SessionGuard re-loads the
principal on every call and denies it as soon as the account has become
inactive, suspended, terminated or rejected, even though the signature and
expiry are still valid.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from jose import JWTError, jwt

from .exceptions import UnauthorizedError
from .principals import DENIED_STATUS_MESSAGES, Principal, PrincipalKind, utcnow
from .store import CredentialStore
from .variants import variant_for, variant_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_in: int


@dataclass
class TokenIssuer:
    secret_key: str
    algorithm: str = "HS256"
    ttl_seconds: dict[PrincipalKind, int] = field(
        default_factory=lambda: {
            PrincipalKind.INDIVIDUAL: 2 * 365 * 24 * 60 * 60,
            PrincipalKind.ORGANIZATION: 24 * 60 * 60,
        }
    )
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(self, principal: Principal) -> IssuedToken:
        """Create a signed access token for a verified principal."""
        variant = variant_of(principal)
        expires_in = self.ttl_seconds[principal.kind]
        now = self.clock()
        payload = {
            "sub": str(principal.id),
            "roles": list(principal.roles),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
            **variant.token_claims(principal),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_in=expires_in)

    def decode(self, token: str) -> dict:
        """
        Verify signature and expiry.

        Raises:
            UnauthorizedError: token expired, tampered with, or malformed
        """
        try:
            payload = jwt.decode(
                token, self.secret_key, algorithms=[self.algorithm], options={"verify_exp": False}
            )
        except JWTError as e:
            raise UnauthorizedError("Invalid token") from e

        # Expiry is checked against the injected clock.
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp <= self.clock().timestamp():
            raise UnauthorizedError("Session has expired")
        return payload


@dataclass
class SessionGuard:
    """Resolves a bearer token to the current principal on every request."""

    tokens: TokenIssuer
    store: CredentialStore

    def authenticate(self, token: str) -> Principal:
        payload = self.tokens.decode(token)
        try:
            kind = PrincipalKind(payload.get("type", PrincipalKind.INDIVIDUAL.value))
            principal_id = UUID(payload["sub"])
        except (KeyError, ValueError) as e:
            raise UnauthorizedError("Invalid token") from e

        principal = self.store.find_by_id(variant_for(kind), principal_id)
        if principal is None:
            raise UnauthorizedError("Account not found")
        denial = DENIED_STATUS_MESSAGES.get(principal.status)
        if denial is not None:
            logger.warning("Token for %s rejected: account %s", principal.display_id, principal.status.value)
            raise UnauthorizedError(denial)
        return principal
