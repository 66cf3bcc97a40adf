"""
Password hashing, JWT handling and the bearer-token dependency.

``Credentials`` holds the signing secret and bcrypt work factor taken
from ``Settings``; one instance is built per application and never
changed afterwards.  Token failures keep their distinct types
(``TokenExpired``, ``TokenInvalid``) for logging, while the HTTP layer
reports every one of them as the same 401.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import cached_property
from typing import Optional

import bcrypt
import jwt
from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings
from errors import TokenExpired, TokenInvalid, Unauthorized

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class Credentials:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(days=7),
        rounds: int = 10,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self.rounds = rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> "Credentials":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            token_ttl=timedelta(days=settings.token_expire_days),
            rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, password: str, hashed: str) -> bool:
        """Check ``password`` against a stored hash.

        A mismatch returns False; a malformed hash raises ``ValueError``.
        """
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))

    @cached_property
    def _dummy_hash(self) -> str:
        return self.hash_password("not-a-real-password")

    def verify_login(self, password: str, hashed: Optional[str]) -> bool:
        """Like ``verify_password``, but also costs a full bcrypt check when there is no account."""
        if hashed is None:
            self.verify_password(password, self._dummy_hash)
            return False
        return self.verify_password(password, hashed)

    def issue_token(self, user_id: str, issued_at: Optional[datetime] = None) -> str:
        iat = issued_at or datetime.now(timezone.utc)
        payload = {"id": str(user_id), "iat": iat, "exp": iat + self.token_ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> str:
        """Return the user id embedded in ``token``.

        Raises ``TokenExpired`` once the expiry has passed and
        ``TokenInvalid`` for a bad signature, a malformed token or a
        token without an ``id`` claim.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid() from exc

        user_id = payload.get("id")
        if not isinstance(user_id, str) or not ObjectId.is_valid(user_id):
            raise TokenInvalid("Token has no valid identity")
        return user_id


bearer_scheme = HTTPBearer(auto_error=False)


def get_credentials(request: Request) -> Credentials:
    return request.app.state.credentials


def get_current_user_id(
    request: Request,
    authorization: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    credentials: Credentials = Depends(get_credentials),
) -> str:
    """Resolve the caller's user id from ``Authorization: Bearer <token>``.

    The id is also left on ``request.state.user_id``.
    """
    # the scheme is case-sensitive: only "Bearer <token>" is accepted
    if authorization is None or authorization.scheme != "Bearer" or not authorization.credentials:
        raise Unauthorized("No token provided")
    try:
        user_id = credentials.verify_token(authorization.credentials)
    except Unauthorized as exc:
        logger.info("Rejected bearer token on %s: %s", request.url.path, exc.message)
        raise Unauthorized("Invalid token") from exc
    request.state.user_id = user_id
    return user_id
