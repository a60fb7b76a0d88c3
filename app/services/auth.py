from typing import Optional
from datetime import datetime, timedelta, timezone

import jwt
from loguru import logger
from pydantic import ValidationError

from app.core.config import Settings
from app.core.errors import ErrorKind
from app.db.schema import Role
from app.models.auth import AuthDecision, Principal, SigningConfig


ALLOW = AuthDecision(allowed=True)


class AuthGate:
    """
    Turns a signed session token into a Principal and decides whether that
    principal may run an operation.
    The signing key comes from the SigningConfig handed to the constructor,
    so tests can build a gate with their own key.
    """
    TOKEN_TYPE = "access"

    def __init__(self, config: SigningConfig):
        self.config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthGate":
        return cls(SigningConfig(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        ))

    def issue_token(self, principal: Principal, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        expires_delta = expires_delta or timedelta(minutes=self.config.expire_minutes)
        to_encode = {
            "sub": str(principal.user_id),
            "email": principal.email,
            "name": principal.name,
            "role": principal.role.value,
            "type": self.TOKEN_TYPE,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(to_encode, self.config.secret_key, algorithm=self.config.algorithm)

    def resolve_principal(self, credential: Optional[str]) -> Optional[Principal]:
        """
        Verifies signature and expiry and rebuilds the Principal.
        Any failure yields None; this never raises.
        """
        if not credential:
            return None

        try:
            payload = jwt.decode(
                credential,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.debug(f"Rejected session token: {e}")
            return None

        if payload.get("type") != self.TOKEN_TYPE:
            return None

        try:
            return Principal(
                user_id=payload.get("sub"),
                email=payload.get("email"),
                name=payload.get("name"),
                role=payload.get("role"),
            )
        except ValidationError:
            logger.debug("Rejected session token: malformed claims")
            return None

    def authorize(self, principal: Optional[Principal], required_role: Optional[Role] = None) -> AuthDecision:
        if principal is None:
            return AuthDecision(allowed=False, reason=ErrorKind.UNAUTHENTICATED)
        if required_role is not None and principal.role != required_role:
            return AuthDecision(allowed=False, reason=ErrorKind.FORBIDDEN)
        return ALLOW
