import re
import time

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreError, ValidationError
from app.core.logger import get_logger
from app.core.security import generate_temporary_password, hash_password
from app.models.profile import Profile, UserRole
from app.models.user import User

logger = get_logger(__name__)

PLACEHOLDER_EMAIL_DOMAIN = "temp.logistics.com"


def placeholder_email(name: str) -> str:
    slug = re.sub(r"\s+", ".", (name or "").strip().lower()) or "user"
    return f"{slug}.{int(time.time() * 1000)}@{PLACEHOLDER_EMAIL_DOMAIN}"


def create_user_with_profile(
    db: Session,
    name: str,
    role: UserRole | str = UserRole.DRIVER,
    phone: str | None = None,
    email: str | None = None,
) -> dict:
    """Create a login plus its profile with a one-time temporary password."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    try:
        role_value = UserRole(role).value
    except ValueError:
        raise ValidationError("Invalid role")

    user_email = (email or "").strip().lower() or placeholder_email(name)

    existing = db.query(User).filter(func.lower(User.email) == user_email).first()
    if existing:
        raise ValidationError(
            "A user with this email already exists. Please use a different email address."
        )

    temporary_password = generate_temporary_password()

    user = User(email=user_email, hashed_password=hash_password(temporary_password))
    db.add(user)

    try:
        db.flush()
        profile = Profile(
            user_id=user.id,
            name=name,
            phone=phone,
            role=role_value,
            is_verified=True,
        )
        db.add(profile)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError(
            "A user with this email already exists. Please use a different email address."
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"User creation error for {user_email}: {e}")
        raise StoreError("Failed to create user")

    db.refresh(profile)
    logger.info(f"Created user {user_email} with role {role_value}")

    return {
        "success": True,
        "user": {
            "id": profile.id,
            "user_id": user.id,
            "name": profile.name,
            "email": user_email,
            "phone": profile.phone,
            "role": profile.role,
            "is_verified": profile.is_verified,
        },
        "temporaryPassword": temporary_password,
        "email": user_email,
    }
