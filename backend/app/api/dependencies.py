from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.security import decode_access_token
from app.crud.users import get_user
from app.models.enums import ADMIN_ROLES
from app.models.users import User


# Tokens come from the shared identity service; tokenUrl only documents it.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise _unauthorized()
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _unauthorized()
    user = get_user(db, user_id)
    if user is None:
        raise _unauthorized()
    request.state.user_id = user.id
    return user


def require_admin():
    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in ADMIN_ROLES:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return current_user

    return _dependency
