from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship

from app.db.base import Base


class AuditLog(Base):
    """Who changed what. Written after every mutating route and by the sweep."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Null for system actions such as the auto-start sweep
    actor_id = Column("user_id", Integer, ForeignKey("users.id"), nullable=True)

    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=True)
    details = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    actor = relationship("User")
