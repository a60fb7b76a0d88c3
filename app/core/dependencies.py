from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.core.config import settings
from app.db.core import get_session
from app.models.auth import Principal
from app.services.auth import AuthGate
from app.services.notification import EmailNotifier, Notifier
from app.services.pdi_request import PDIRequestService
from app.services.user import UserService

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token", auto_error=False)


@lru_cache()
def get_auth_gate() -> AuthGate:
    """One gate per process, built from settings on first use."""
    return AuthGate.from_settings(settings)


def get_notifier(session: Session = Depends(get_session)) -> Notifier:
    return EmailNotifier(session=session, settings=settings)


def get_user_service(
    session: Session = Depends(get_session),
    gate: AuthGate = Depends(get_auth_gate)
) -> UserService:
    """Creates a UserService instance using the active DB session."""
    return UserService(session, gate)


def get_pdi_request_service(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
    gate: AuthGate = Depends(get_auth_gate)
) -> PDIRequestService:
    return PDIRequestService(session=session, notifier=notifier, gate=gate)


def get_credentials(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme)
) -> List[str]:
    """
    Candidate session tokens in the order they are tried: the auth cookie,
    then the Bearer header. Absent credentials are skipped, never rejected.
    """
    cookie = request.cookies.get(settings.auth_cookie_name)
    return [token for token in (cookie, bearer_token) if token]


def get_current_principal(
    credentials: List[str] = Depends(get_credentials),
    gate: AuthGate = Depends(get_auth_gate)
) -> Optional[Principal]:
    """
    Resolves the caller's Principal from the first credential that verifies,
    or None when none does. A stale cookie does not hide a valid Bearer token.
    Admission is decided by the service operation, not here.
    """
    for credential in credentials:
        principal = gate.resolve_principal(credential)
        if principal is not None:
            return principal
    return None
