from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class PendingSignup(BaseModel):
    name: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class SendOtpRequest(BaseModel):
    email: EmailStr
    user_data: Optional[PendingSignup] = Field(default=None, alias="userData")

    class Config:
        populate_by_name = True


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp_code: str = Field(..., alias="otpCode", min_length=1)

    class Config:
        populate_by_name = True
