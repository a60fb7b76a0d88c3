from typing import List, Optional, Tuple
import uuid

from loguru import logger
from sqlmodel import Session, select, or_

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError
from app.db.schema import User, Role, UserStatus
from app.models.auth import Principal
from app.models.user import UserCreate
from app.services.auth import AuthGate
from .password import get_password_hash, verify_password


SIGNIN_BLOCKED_MESSAGES = {
    UserStatus.PENDING: "Your account is pending admin approval. You will receive an email notification once approved.",
    UserStatus.REJECTED: "Your account registration was not approved. Please contact support for more information.",
    UserStatus.SUSPENDED: "Your account has been suspended. Please contact support.",
}


class UserService:
    def __init__(self, session: Session, gate: AuthGate):
        self.session = session
        self.gate = gate

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return self.session.exec(statement).first()

    @staticmethod
    def to_principal(user: User) -> Principal:
        return Principal(user_id=user.id, email=user.email, name=user.name, role=user.role)

    def create_user(self, user_in: UserCreate) -> User:
        """
        Self-registration.
        Dealers always wait for manual approval; other roles are approved
        immediately only when auto-approval is switched on.
        """
        if user_in.role == Role.ADMIN:
            raise ServiceError(ErrorKind.VALIDATION,
                               "Please select a valid role")
        if user_in.password != user_in.confirm_password:
            raise ServiceError(ErrorKind.VALIDATION, "Passwords don't match")

        existing = self.session.exec(
            select(User).where(
                or_(User.email == user_in.email, User.mobile == user_in.mobile))
        ).first()
        if existing:
            raise ServiceError(ErrorKind.VALIDATION,
                               "User with this email or mobile already exists")

        initial_status = UserStatus.APPROVED if settings.auto_approve_users else UserStatus.PENDING
        if user_in.role == Role.DEALER:
            initial_status = UserStatus.PENDING

        new_user = User(
            email=user_in.email,
            name=user_in.name,
            mobile=user_in.mobile,
            hashed_password=get_password_hash(user_in.password),
            role=user_in.role,
            status=initial_status,
        )

        try:
            self.session.add(new_user)
            self.session.commit()
            self.session.refresh(new_user)
        except Exception:
            self.session.rollback()
            logger.exception(f"Registration failed for {user_in.email}")
            raise ServiceError(ErrorKind.INTERNAL)

        logger.info(
            f"Registered {new_user.role.value} {new_user.email} with status {new_user.status.value}")
        return new_user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Verify email and password hash."""
        user = self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def sign_in(self, email: str, password: str) -> Tuple[User, str]:
        user = self.authenticate_user(email, password)
        if not user:
            # Same message for unknown email and wrong password
            raise ServiceError(ErrorKind.UNAUTHENTICATED, "Invalid credentials")

        if user.status in SIGNIN_BLOCKED_MESSAGES:
            raise ServiceError(ErrorKind.FORBIDDEN,
                               SIGNIN_BLOCKED_MESSAGES[user.status])

        token = self.gate.issue_token(self.to_principal(user))
        logger.info(f"User logged in: {user.id}")
        return user, token

    def list_users(self, principal: Optional[Principal]) -> List[User]:
        self.gate.authorize(principal, Role.ADMIN).raise_for_denial()
        statement = select(User).order_by(User.created_at.desc())
        return list(self.session.exec(statement).all())

    def update_status(self, principal: Optional[Principal], user_id: uuid.UUID, new_status: UserStatus) -> User:
        """Admin approval / rejection / suspension of an account."""
        self.gate.authorize(principal, Role.ADMIN).raise_for_denial()

        user = self.get_user_by_id(user_id)
        if not user:
            raise ServiceError(ErrorKind.NOT_FOUND, "User not found")

        if user.id == principal.user_id and new_status != UserStatus.APPROVED:
            raise ServiceError(ErrorKind.VALIDATION,
                               "You cannot deactivate your own account")

        user.status = new_status
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except Exception:
            self.session.rollback()
            logger.exception(f"Failed to update status of user {user_id}")
            raise ServiceError(ErrorKind.INTERNAL)

        logger.info(
            f"User {user.id} set to {new_status.value} by admin {principal.user_id}")
        return user
