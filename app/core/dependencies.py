from typing import Generator, Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.profile import UserRole
from app.models.user import User


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_email(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized("Invalid authentication token")

    email = payload.get("sub")
    if not isinstance(email, str) or not email.strip():
        raise _unauthorized("Invalid token payload")
    return email.strip().lower()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a User with its profile loaded."""
    user = (
        db.query(User)
        .options(joinedload(User.profile))
        .filter(User.email == _token_email(token))
        .first()
    )
    if user is None:
        raise _unauthorized("User not found")

    return user


def user_role(user: User) -> str:
    if not user.profile or not user.profile.role:
        return ""
    return user.profile.role.strip().lower()


def driver_scope(user: User) -> int | None:
    """Profile id to restrict trip queries to, or None for staff roles."""
    if user_role(user) == UserRole.DRIVER.value:
        return user.profile.id
    return None


def require_role(required_roles: Iterable[str | UserRole]):
    allowed_roles = {
        (role.value if isinstance(role, UserRole) else role).strip().lower()
        for role in required_roles
        if role
    }

    def role_checker(user: User = Depends(get_current_user)) -> User:
        role = user_role(user)

        if not role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User role not assigned",
            )

        if role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )

        return user

    return role_checker
