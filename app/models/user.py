from uuid import UUID
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints
from typing_extensions import Annotated

from app.db.schema import Role, UserStatus


class UserRead(SQLModel):
    id: UUID
    email: str
    name: str
    mobile: Optional[str] = None
    role: Role
    status: UserStatus
    created_at: datetime


class UserSignin(SQLModel):
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Registered email address of the user.",
        max_length=255
    )
    password: str = Field(
        min_length=6,
        max_length=128,
        description="Plain text password."
    )


class UserCreate(SQLModel):
    """
    DTO for self-registration.
    ADMIN accounts cannot be created through this path; see seed.py.
    """
    name: str = Field(
        min_length=2,
        max_length=100,
        description="User's display name."
    )
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Unique email address for signin.",
        max_length=255
    )
    mobile: Annotated[str, StringConstraints(
        strip_whitespace=True,
        min_length=10,
        max_length=20,
        pattern=r"^[0-9+\-\s()]+$"
    )] = Field(description="Contact mobile number.")
    password: str = Field(
        min_length=6,
        max_length=128,
        description="Plain text password."
    )
    confirm_password: str
    role: Role = Field(
        description="The type of account to create: CLIENT, DEALER or AGENT."
    )


class UserStatusUpdate(SQLModel):
    status: UserStatus = Field(description="New approval state for the account.")


class SigninResponse(SQLModel):
    success: bool = True
    user: UserRead
    access_token: str
    token_type: str = "bearer"
