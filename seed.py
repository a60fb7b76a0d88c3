import argparse
import os

from loguru import logger
from sqlmodel import Session, select

from app.db.core import engine, init_db
from app.db.schema import User, Role, UserStatus
from app.services.password import get_password_hash


DEFAULT_ADMIN_EMAIL = "admin@pdidesk.local"
DEFAULT_ADMIN_NAME = "Administrator"


def seed_admin(session: Session, email: str, name: str, password: str, mobile: str = None) -> User:
    """
    Creates the admin account, or promotes and re-activates an existing one.
    Idempotent: running it twice leaves a single APPROVED admin.
    """
    logger.info("--- Seeding Admin ---")
    user = session.exec(select(User).where(User.email == email)).first()

    if not user:
        user = User(
            email=email,
            name=name,
            mobile=mobile,
            hashed_password=get_password_hash(password),
            role=Role.ADMIN,
            status=UserStatus.APPROVED,
        )
        logger.info(f"Created Admin: {email}")
    else:
        user.role = Role.ADMIN
        user.status = UserStatus.APPROVED
        user.hashed_password = get_password_hash(password)
        logger.info(f"Existing user {email} promoted/reset as Admin")

    session.add(user)
    session.flush()
    return user


def main():
    parser = argparse.ArgumentParser(description="Create or reset the admin account.")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", DEFAULT_ADMIN_NAME))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--mobile", default=os.getenv("ADMIN_MOBILE"))
    args = parser.parse_args()

    if not args.password:
        parser.error("an admin password is required (--password or ADMIN_PASSWORD)")

    init_db()

    with Session(engine) as session:
        try:
            seed_admin(session, args.email.lower(), args.name, args.password, args.mobile)
            session.commit()
            logger.success("Seeding completed successfully!")
        except Exception:
            session.rollback()
            logger.exception("Seeding failed")
            raise


if __name__ == "__main__":
    main()
