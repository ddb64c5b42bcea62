from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_user, get_db
from app.core.security import create_access_token, verify_password
from app.models.user import User
from app.schemas.otp import SendOtpRequest, VerifyOtpRequest
from app.services.audit_service import log_auth_event
from app.services.otp_service import issue_otp, verify_otp


router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    email = (form_data.username or "").strip().lower()
    db_user = db.query(User).filter(func.lower(User.email) == email).first()

    if not db_user or not verify_password(form_data.password, db_user.hashed_password):
        log_auth_event(
            db=db,
            action="AUTH_LOGIN_FAILED",
            email=email,
            details="Invalid credentials"
        )
        raise HTTPException(status_code=401, detail="Invalid credentials")

    profile = db_user.profile
    if not profile or not profile.role:
        log_auth_event(
            db=db,
            action="AUTH_LOGIN_FAILED",
            email=email,
            user_id=db_user.id,
            details="User role not assigned"
        )
        raise HTTPException(status_code=403, detail="User role not assigned")

    access_token = create_access_token(
        data={
            "sub": db_user.email,
            "role": profile.role,
            "name": profile.name or "",
        }
    )

    log_auth_event(
        db=db,
        action="AUTH_LOGIN_SUCCESS",
        email=db_user.email,
        user_id=db_user.id,
        details=f"Role: {profile.role}"
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.post("/send-otp")
def send_otp(body: SendOtpRequest, db: Session = Depends(get_db)):
    user_data = body.user_data.model_dump() if body.user_data else None
    result = issue_otp(db, body.email, user_data)

    log_auth_event(db=db, action="AUTH_OTP_SENT", email=body.email.lower())
    return result


@router.post("/verify-otp")
def verify_otp_code(body: VerifyOtpRequest, db: Session = Depends(get_db)):
    result = verify_otp(db, body.email, body.otp_code)

    log_auth_event(
        db=db,
        action="AUTH_OTP_VERIFIED",
        email=body.email.lower(),
        user_id=result.get("userId"),
        details=result["message"]
    )
    return result


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    profile = user.profile
    return {
        "id": profile.id if profile else None,
        "user_id": user.id,
        "email": user.email,
        "name": profile.name if profile else None,
        "phone": profile.phone if profile else None,
        "role": profile.role if profile else None,
        "is_verified": profile.is_verified if profile else False,
        "avatar_url": profile.avatar_url if profile else None,
    }
