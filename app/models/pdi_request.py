from uuid import UUID
from typing import Optional, List
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel, Field

from app.db.schema import PDIRequestStatus


class _CamelInput(BaseModel):
    # Accept both snake_case and the camelCase keys the web client sends
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PDIRequestCreate(_CamelInput):
    """
    Payload for a new PDI request.
    Required fields are optional here so the service can report a missing
    field as a validation error rather than a schema error.
    """
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_type: Optional[str] = None
    location: Optional[str] = None
    mobile: Optional[str] = None
    preferred_date: Optional[date] = None
    notes: Optional[str] = None


class PDIRequestUpdate(_CamelInput):
    # status is a plain string so unknown values are rejected by the service
    status: Optional[str] = None
    admin_notes: Optional[str] = None
    admin_message: Optional[str] = None


class InspectionLink(_CamelInput):
    inspection_id: UUID


class PDIRequestOwner(SQLModel):
    name: str
    email: str
    mobile: Optional[str] = None


class PDIRequestRead(SQLModel):
    id: UUID
    user_id: UUID
    vehicle_name: str
    vehicle_model: str
    vehicle_type: Optional[str] = None
    location: str
    mobile: Optional[str] = None
    preferred_date: Optional[date] = None
    notes: Optional[str] = None
    status: PDIRequestStatus
    admin_notes: Optional[str] = None
    admin_message: Optional[str] = None
    pdi_inspection_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class PDIRequestDetail(PDIRequestRead):
    user: Optional[PDIRequestOwner] = None


class PDIRequestCreated(SQLModel):
    success: bool = True
    request_id: UUID
    request: PDIRequestRead
    notification_sent: bool = Field(
        description="Whether the admin notification was delivered. Never affects success."
    )


class PDIRequestEnvelope(SQLModel):
    request: Optional[PDIRequestDetail] = None
    notification_sent: Optional[bool] = Field(
        default=None,
        description="Outcome of the requester notification; null when none was attempted."
    )


class PDIRequestList(SQLModel):
    requests: List[PDIRequestDetail]
