# app/services/otp_service.py
"""
Email OTP verification gating account creation.

One live code per email: issuing a new code deletes the earlier unverified
ones. Codes are 6 digits and expire after OTP_EXPIRY_MINUTES. Verification
attempts are not counted; expiry is the only limit.
"""

import secrets
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError, StoreError, ValidationError
from app.core.logger import get_logger
from app.core.security import hash_password
from app.models.otp_verification import OtpVerification
from app.models.profile import Profile, UserRole
from app.models.user import User

logger = get_logger(__name__)

INVALID_OTP_MESSAGE = "Invalid or expired OTP"


def generate_otp_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def _normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("Email is required")
    return normalized


def _pending_signup(user_data: dict | None) -> dict | None:
    if not user_data:
        return None

    pending = {k: v for k, v in user_data.items() if v is not None}
    password = pending.pop("password", None)
    if password:
        pending["password_hash"] = hash_password(password)

    return pending or None


def deliver_otp(email: str, otp_code: str):
    # Delivery channel is external; the code only goes to the log
    logger.info(f"OTP for {email}: {otp_code}")


def issue_otp(db: Session, email: str, user_data: dict | None = None, now: datetime | None = None) -> dict:
    email = _normalize_email(email)
    now = now or datetime.utcnow()
    otp_code = generate_otp_code()

    try:
        db.query(OtpVerification).filter(
            OtpVerification.email == email,
            OtpVerification.verified == False,
        ).delete(synchronize_session=False)

        db.add(
            OtpVerification(
                email=email,
                otp_code=otp_code,
                user_data=_pending_signup(user_data),
                expires_at=now + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
                verified=False,
                created_at=now,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error storing OTP for {email}: {e}")
        raise StoreError("Failed to store OTP")

    deliver_otp(email, otp_code)

    response = {"success": True, "message": "OTP sent successfully"}
    if settings.OTP_DEBUG_ECHO:
        response["otp"] = otp_code
    return response


def _create_account(db: Session, email: str, pending: dict) -> User:
    existing = db.query(User).filter(func.lower(User.email) == email).first()
    if existing:
        raise ValidationError(
            "A user with this email already exists. Please use a different email address."
        )

    role = pending.get("role") or UserRole.DRIVER.value
    try:
        role = UserRole(str(role).strip().lower()).value
    except ValueError:
        raise ValidationError("Invalid role")

    user = User(email=email, hashed_password=pending["password_hash"])
    db.add(user)
    db.flush()

    db.add(
        Profile(
            user_id=user.id,
            name=(pending.get("name") or email.split("@")[0]).strip(),
            phone=pending.get("phone"),
            role=role,
            is_verified=True,
        )
    )
    return user


def verify_otp(db: Session, email: str, otp_code: str, now: datetime | None = None) -> dict:
    email = _normalize_email(email)
    otp_code = (otp_code or "").strip()
    if not otp_code:
        raise ValidationError("Email and OTP code are required")

    now = now or datetime.utcnow()

    record = (
        db.query(OtpVerification)
        .filter(
            OtpVerification.email == email,
            OtpVerification.otp_code == otp_code,
            OtpVerification.verified == False,
            OtpVerification.expires_at > now,
        )
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
        .first()
    )

    # Wrong and expired codes are reported the same way
    if not record:
        logger.warning(f"OTP verification failed for {email}")
        raise NotFoundError(INVALID_OTP_MESSAGE, status_code=400)

    record.verified = True
    pending = record.user_data or {}

    try:
        if pending.get("password_hash"):
            user = _create_account(db, email, pending)
            db.commit()
            logger.info(f"Account created for {email} (user {user.id})")
            return {
                "success": True,
                "message": "Account created successfully",
                "userId": user.id,
            }

        profile = (
            db.query(Profile)
            .join(User, User.id == Profile.user_id)
            .filter(func.lower(User.email) == email)
            .first()
        )
        if profile:
            profile.is_verified = True

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to complete OTP verification for {email}: {e}")
        raise StoreError("Failed to create user account")
    except ValidationError:
        db.rollback()
        raise

    logger.info(f"Email verified for {email}")
    return {"success": True, "message": "Email verified successfully"}
