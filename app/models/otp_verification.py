from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from app.db.base import Base


class OtpVerification(Base):
    __tablename__ = "otp_verifications"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, index=True)
    otp_code = Column(String(6), nullable=False)

    # Pending signup payload, consumed on successful verification
    user_data = Column(JSON, nullable=True)

    expires_at = Column(DateTime, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
