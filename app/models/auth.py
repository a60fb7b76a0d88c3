from uuid import UUID
from typing import Optional
from pydantic import BaseModel, ConfigDict
from sqlmodel import SQLModel

from app.core.errors import ErrorKind, ServiceError
from app.db.schema import Role


class Principal(BaseModel):
    """
    The identity attached to a request after its token has been verified.
    Rebuilt from the token on every request and never persisted.
    """
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    email: str
    name: str
    role: Role


class SigningConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    secret_key: str
    algorithm: str = "HS256"
    expire_minutes: int = 60 * 24


class AuthDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[ErrorKind] = None

    def raise_for_denial(self, message: Optional[str] = None):
        if not self.allowed:
            raise ServiceError(self.reason, message)


class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"
