import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Union

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select, func

from app.core.audit import _perform_audit_log
from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError
from app.db.schema import (
    AuditAction, PDIInspection, PDIRequest, PDIRequestStatus, Role
)
from app.models.auth import Principal
from app.models.pdi_request import PDIRequestCreate, PDIRequestUpdate
from app.services.auth import AuthGate
from app.services.notification import Notifier


ALLOWED_TRANSITIONS: Dict[PDIRequestStatus, FrozenSet[PDIRequestStatus]] = {
    PDIRequestStatus.PENDING: frozenset({
        PDIRequestStatus.IN_PROGRESS,
        PDIRequestStatus.COMPLETED,
        PDIRequestStatus.ISSUES_FOUND,
    }),
    PDIRequestStatus.IN_PROGRESS: frozenset({
        PDIRequestStatus.COMPLETED,
        PDIRequestStatus.ISSUES_FOUND,
    }),
    PDIRequestStatus.COMPLETED: frozenset(),
    PDIRequestStatus.ISSUES_FOUND: frozenset(),
}

REQUIRED_CREATE_FIELDS = ("vehicle_make", "vehicle_model", "location", "mobile")


def can_transition(current: PDIRequestStatus, target: PDIRequestStatus) -> bool:
    """Re-applying the current status is always allowed."""
    return target == current or target in ALLOWED_TRANSITIONS[current]


def parse_status(value: str) -> PDIRequestStatus:
    try:
        return PDIRequestStatus(value)
    except ValueError:
        raise ServiceError(ErrorKind.VALIDATION, "Invalid status")


@dataclass(frozen=True)
class LifecycleResult:
    """
    Outcome of a lifecycle mutation.
    `notified` is None when no notification was attempted, otherwise the
    delivery result. It never changes whether the mutation succeeded.
    """
    record: PDIRequest
    notified: Optional[bool] = None


class PDIRequestService:
    def __init__(self, session: Session, notifier: Notifier, gate: AuthGate):
        self.session = session
        self.notifier = notifier
        self.gate = gate

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    def _parse_id(self, request_id: Union[str, uuid.UUID]) -> uuid.UUID:
        if isinstance(request_id, uuid.UUID):
            return request_id
        try:
            return uuid.UUID(str(request_id))
        except ValueError:
            raise ServiceError(ErrorKind.NOT_FOUND, "PDI request not found")

    def _get_or_404(self, request_id: Union[str, uuid.UUID]) -> PDIRequest:
        record = self.session.get(PDIRequest, self._parse_id(request_id))
        if not record:
            raise ServiceError(ErrorKind.NOT_FOUND, "PDI request not found")
        return record

    def _commit(self, record: PDIRequest, failure_message: str):
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except Exception:
            self.session.rollback()
            logger.exception(failure_message)
            raise ServiceError(ErrorKind.INTERNAL)

    def _audit(self, background_tasks: Optional[BackgroundTasks], principal: Principal,
               record: PDIRequest, action: AuditAction, changes: dict):
        if background_tasks is None:
            return
        background_tasks.add_task(
            _perform_audit_log,
            user_id=principal.user_id,
            entity_type="PDIRequest",
            entity_id=record.id,
            action=action,
            changes=changes,
        )

    def _notify_requester(self, record: PDIRequest, message: Optional[str]) -> bool:
        try:
            delivered = self.notifier.notify_requester_of_status_change(
                record, record.status, message)
        except Exception:
            logger.exception(
                f"Requester notification raised for PDI request {record.id}")
            delivered = False

        if not delivered:
            logger.warning(
                f"Requester notification not delivered for PDI request {record.id}")
        return bool(delivered)

    # ==========================================================================
    # CLIENT ACTIONS
    # ==========================================================================

    def create(
        self,
        principal: Optional[Principal],
        data: PDIRequestCreate,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> LifecycleResult:
        """
        Stores a new PENDING request owned by the caller, then alerts the admins.
        """
        self.gate.authorize(principal).raise_for_denial(
            "You must be logged in to submit a request.")

        for field in REQUIRED_CREATE_FIELDS:
            value = getattr(data, field)
            if value is None or not value.strip():
                raise ServiceError(ErrorKind.VALIDATION,
                                   "Please fill in all required fields.")

        if settings.single_pending_request and self.has_pending_request(principal.user_id):
            raise ServiceError(ErrorKind.VALIDATION,
                               "You already have a pending request.")

        record = PDIRequest(
            user_id=principal.user_id,
            vehicle_name=data.vehicle_make.strip(),
            vehicle_model=data.vehicle_model.strip(),
            vehicle_type=data.vehicle_type,
            location=data.location.strip(),
            mobile=data.mobile.strip(),
            preferred_date=data.preferred_date,
            notes=data.notes or "",
            status=PDIRequestStatus.PENDING,
        )
        self._commit(record, "Failed to create PDI request")
        logger.info(
            f"PDI request {record.id} created by {principal.user_id}")

        try:
            notified = self.notifier.notify_admin_of_new_request(
                record, principal)
        except Exception:
            logger.exception(
                f"Admin notification raised for PDI request {record.id}")
            notified = False
        if not notified:
            logger.warning(
                f"Admin notification not delivered for PDI request {record.id}")

        self._audit(background_tasks, principal, record, AuditAction.CREATE, {
            "vehicle_name": record.vehicle_name,
            "vehicle_model": record.vehicle_model,
            "location": record.location,
        })
        return LifecycleResult(record=record, notified=bool(notified))

    def list_for_principal(
        self,
        principal: Optional[Principal],
        status_filter: Optional[str] = None
    ) -> List[PDIRequest]:
        """Admins see every request, everyone else only their own. Newest first."""
        self.gate.authorize(principal).raise_for_denial()

        statement = select(PDIRequest).options(
            selectinload(PDIRequest.user))
        if principal.role != Role.ADMIN:
            statement = statement.where(
                PDIRequest.user_id == principal.user_id)
        if status_filter:
            statement = statement.where(
                PDIRequest.status == parse_status(status_filter))

        statement = statement.order_by(PDIRequest.created_at.desc())
        return list(self.session.exec(statement).all())

    def latest_for_principal(self, principal: Optional[Principal]) -> Optional[PDIRequest]:
        """The caller's most recent request, if any."""
        self.gate.authorize(principal).raise_for_denial()

        statement = (
            select(PDIRequest)
            .where(PDIRequest.user_id == principal.user_id)
            .order_by(PDIRequest.created_at.desc())
        )
        return self.session.exec(statement).first()

    def get_by_id(self, principal: Optional[Principal], request_id: Union[str, uuid.UUID]) -> PDIRequest:
        self.gate.authorize(principal).raise_for_denial()

        record = self._get_or_404(request_id)
        if principal.role != Role.ADMIN and record.user_id != principal.user_id:
            raise ServiceError(ErrorKind.FORBIDDEN,
                               "You do not have access to this request")
        return record

    def has_pending_request(self, user_id: uuid.UUID) -> bool:
        statement = (
            select(func.count())
            .select_from(PDIRequest)
            .where(PDIRequest.user_id == user_id)
            .where(PDIRequest.status == PDIRequestStatus.PENDING)
        )
        return self.session.exec(statement).one() > 0

    # ==========================================================================
    # ADMIN ACTIONS
    # ==========================================================================

    def update_status(
        self,
        principal: Optional[Principal],
        request_id: Union[str, uuid.UUID],
        data: PDIRequestUpdate,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> LifecycleResult:
        """
        Partial update of status / admin notes / admin message.
        The requester is notified when a status or a non-empty message was sent.
        """
        self.gate.authorize(principal, Role.ADMIN).raise_for_denial(
            "Admin access required")

        new_status = parse_status(
            data.status) if data.status is not None else None

        record = self._get_or_404(request_id)
        old_status = record.status

        if new_status is not None and not can_transition(old_status, new_status):
            raise ServiceError(
                ErrorKind.VALIDATION,
                f"Cannot change status from {old_status.value} to {new_status.value}"
            )

        changes = {}
        if new_status is not None:
            record.status = new_status
            changes["status"] = {"old": old_status.value,
                                 "new": new_status.value}
        if data.admin_notes is not None:
            record.admin_notes = data.admin_notes
            changes["admin_notes"] = data.admin_notes
        if data.admin_message is not None:
            record.admin_message = data.admin_message
            changes["admin_message"] = data.admin_message

        self._commit(record, f"Failed to update PDI request {record.id}")
        logger.info(
            f"PDI request {record.id} updated by admin {principal.user_id}: {changes}")

        notified = None
        if new_status is not None or data.admin_message:
            notified = self._notify_requester(record, data.admin_message)

        self._audit(background_tasks, principal, record,
                    AuditAction.UPDATE, changes)
        return LifecycleResult(record=record, notified=notified)

    def link_inspection(
        self,
        principal: Optional[Principal],
        request_id: Union[str, uuid.UUID],
        inspection_id: uuid.UUID,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> LifecycleResult:
        """Attaches a finished inspection report and completes the request."""
        self.gate.authorize(principal, Role.ADMIN).raise_for_denial(
            "Admin access required")

        record = self._get_or_404(request_id)
        inspection = self.session.get(PDIInspection, inspection_id)
        if not inspection:
            raise ServiceError(ErrorKind.NOT_FOUND, "PDI inspection not found")

        old_status = record.status
        if not can_transition(old_status, PDIRequestStatus.COMPLETED):
            raise ServiceError(
                ErrorKind.VALIDATION,
                f"Cannot complete a request in status {old_status.value}"
            )

        record.pdi_inspection_id = inspection.id
        record.status = PDIRequestStatus.COMPLETED
        self._commit(
            record, f"Failed to link inspection to PDI request {record.id}")
        logger.info(
            f"PDI request {record.id} linked to inspection {inspection.id}")

        notified = None
        if old_status != PDIRequestStatus.COMPLETED:
            notified = self._notify_requester(record, None)

        self._audit(background_tasks, principal, record, AuditAction.UPDATE, {
            "pdi_inspection_id": str(inspection.id),
            "status": {"old": old_status.value, "new": record.status.value},
        })
        return LifecycleResult(record=record, notified=notified)
