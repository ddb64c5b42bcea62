from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.logger import get_logger
from app.models.audit_log import AuditLog
from app.models.user import User

logger = get_logger(__name__)


def log_action(
    db: Session,
    user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: int = None,
    details: str = None
):
    try:
        db.add(
            AuditLog(
                actor_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        # A failed audit write never fails the request that triggered it
        db.rollback()
        logger.warning(f"Audit log write failed for {action} on {entity_type} {entity_id}: {e}")


def log_auth_event(
    db: Session,
    action: str,
    email: str,
    user_id: Optional[int] = None,
    details: str = None
):
    message = f"Email: {email}"
    if details:
        message = f"{message} | {details}"

    log_action(
        db=db,
        user_id=user_id,
        action=action,
        entity_type="Auth",
        entity_id=user_id,
        details=message
    )


def recent_entries(
    db: Session,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = 200,
) -> list[dict]:
    q = db.query(AuditLog).options(joinedload(AuditLog.actor).joinedload(User.profile))

    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditLog.entity_id == entity_id)

    entries = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()

    result = []

    for entry in entries:
        profile = entry.actor.profile if entry.actor else None
        if profile:
            actor_name = profile.name
        elif entry.actor_id is None:
            actor_name = "System"
        else:
            actor_name = "Deleted User"

        result.append({
            "id": entry.id,
            "timestamp": entry.timestamp,
            "user": {
                "id": entry.actor_id,
                "name": actor_name,
                "role": profile.role if profile else None
            },
            "action": entry.action,
            "entity": {
                "type": entry.entity_type,
                "id": entry.entity_id
            },
            "details": entry.details
        })

    return result
