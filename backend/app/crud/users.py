from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.enums import ADMIN_ROLES
from app.models.users import User


def create_user(
    db: Session,
    *,
    email: str,
    first_name: str = "",
    last_name: str = "",
    role: str = "user",
    phone_number: str | None = None,
) -> User:
    user = User(
        email=email.strip().lower(),
        first_name=first_name,
        last_name=last_name,
        role=role,
        phone_number=phone_number,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def list_admin_emails(db: Session) -> list[str]:
    rows = db.query(User.email).filter(User.role.in_(sorted(ADMIN_ROLES))).all()
    return [row[0] for row in rows if row[0]]
