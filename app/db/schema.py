from typing import Optional, List, Dict, Any
from datetime import datetime, date, timezone
import uuid
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship, JSON
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    DEALER = "DEALER"
    AGENT = "AGENT"


class UserStatus(str, Enum):
    PENDING = "PENDING"      # Waiting for admin approval
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class PDIRequestStatus(str, Enum):
    PENDING = "PENDING"            # Submitted by the client, not yet picked up
    IN_PROGRESS = "IN_PROGRESS"    # Inspector assigned / inspection running
    COMPLETED = "COMPLETED"        # Terminal: inspection finished cleanly
    ISSUES_FOUND = "ISSUES_FOUND"  # Terminal: inspection flagged problems


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    """
    Provides standard audit timestamps for database records.
    Every entity inheriting from this mixin tracks when it was originally
    created and when it was last modified.
    """
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        index=True,
        description="The UTC timestamp when this record was first persisted. Example: '2026-10-27 14:30:00'"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utc_now},
        description="The UTC timestamp when this record was last modified. Updates automatically."
    )


class User(TimestampMixin, SQLModel, table=True):
    """
    A person who can sign in to the platform.
    The role decides which operations the user may perform; the status
    decides whether the user may sign in at all.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for the user."
    )
    email: str = Field(
        unique=True,
        index=True,
        description="The login email address. Example: 'ravi@example.com'"
    )
    name: str = Field(
        description="Display name. Example: 'Ravi Kumar'"
    )
    mobile: Optional[str] = Field(
        default=None,
        unique=True,
        description="Contact mobile number. Example: '9999999999'"
    )
    hashed_password: str = Field(
        description="The salted bcrypt hash of the password. Never store plain text."
    )
    role: Role = Field(
        default=Role.CLIENT,
        index=True,
        description="Access role. Example: 'CLIENT'"
    )
    status: UserStatus = Field(
        default=UserStatus.PENDING,
        description="Approval state of the account. Only APPROVED users may sign in."
    )

    pdi_requests: List["PDIRequest"] = Relationship(back_populates="user")


class PDIInspection(TimestampMixin, SQLModel, table=True):
    """
    A completed pre-delivery inspection report.
    PDI requests point at it by id once the inspection has been carried out.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="Unique ID of the inspection report."
    )
    vehicle_name: str = Field(description="Vehicle make/name. Example: 'Honda'")
    vehicle_model: str = Field(description="Vehicle model. Example: 'City'")
    inspector_name: Optional[str] = Field(
        default=None,
        description="Name of the inspector who signed off the report."
    )
    summary: Optional[str] = Field(
        default=None,
        description="Short free-text outcome of the inspection."
    )


class PDIRequest(TimestampMixin, SQLModel, table=True):
    """
    A client-submitted request for a pre-delivery inspection.
    Created by the owner in PENDING state; afterwards only admins change it.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="Unique ID for this request."
    )
    user_id: uuid.UUID = Field(
        foreign_key="user.id",
        index=True,
        description="The requesting user. Never changes after creation."
    )

    # Vehicle details
    vehicle_name: str = Field(description="Vehicle make. Example: 'Honda'")
    vehicle_model: str = Field(description="Vehicle model. Example: 'City'")
    vehicle_type: Optional[str] = Field(
        default=None,
        description="Body type or category. Example: 'Sedan'"
    )
    location: str = Field(description="Where the vehicle can be inspected. Example: 'Pune'")
    mobile: Optional[str] = Field(
        default=None,
        description="Contact number given with the request."
    )
    preferred_date: Optional[date] = Field(
        default=None,
        description="Date the client would like the inspection to happen."
    )
    notes: Optional[str] = Field(
        default="",
        description="Free-text notes from the requester."
    )

    # Status and admin fields
    status: PDIRequestStatus = Field(
        default=PDIRequestStatus.PENDING,
        index=True,
        description="Current lifecycle status. Example: 'IN_PROGRESS'"
    )
    admin_notes: Optional[str] = Field(
        default=None,
        description="Internal notes written by admins."
    )
    admin_message: Optional[str] = Field(
        default=None,
        description="Message shown to and emailed to the requester."
    )

    pdi_inspection_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="pdiinspection.id",
        description="The inspection report that fulfilled this request, if any."
    )

    user: Optional[User] = Relationship(back_populates="pdi_requests")


class AuditLog(SQLModel, table=True):
    """
    Append-only trail of who changed which record and how.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    actor_user_id: uuid.UUID = Field(index=True)
    entity_type: str = Field(description="Example: 'PDIRequest'")
    entity_id: uuid.UUID = Field(index=True)
    action: AuditAction
    changes: Dict[str, Any] = Field(
        default_factory=dict,
        sa_type=JSON,
        description="The fields that changed, with old/new values where relevant."
    )
    timestamp: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
