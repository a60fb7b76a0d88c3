import uuid
from typing import Any, Dict
from loguru import logger
from sqlmodel import Session

from app.db.schema import AuditLog, AuditAction, utc_now
from app.db.core import engine


def _perform_audit_log(
    user_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    action: AuditAction,
    changes: Dict[str, Any],
):
    """
    Background worker.
    Runs after the response is sent, so it opens its own session on the
    global engine instead of reusing the request session.
    """
    try:
        with Session(engine) as session:
            log_entry = AuditLog(
                actor_user_id=user_id,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                changes=changes,
                timestamp=utc_now()
            )
            session.add(log_entry)
            session.commit()

    except Exception:
        logger.exception(
            f"Audit log failed for {entity_type} {entity_id} ({action.value})")
