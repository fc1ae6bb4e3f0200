# app/services/audit_log_service.py
"""
Record store for audit-log entries.
Entries are append-only; the only mutation is the one-time reverted flip,
done as a conditional UPDATE so two concurrent reverts cannot both claim it.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app.database import storage_guard
from app.models.audit_log import AuditLog
from app.models.enums import YesNo
from app.schemas.audit_log import AuditLogFilters
from app.utils.logger import get_logger

logger = get_logger(__name__)


def create_audit_log(db: Session, entry: AuditLog) -> AuditLog:
    with storage_guard(db, "write audit log"):
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry


def get_audit_log_by_id(db: Session, log_id: int) -> Optional[AuditLog]:
    with storage_guard(db, "get audit log"):
        return db.get(AuditLog, log_id)


def list_audit_logs(
    db: Session,
    filters: Optional[AuditLogFilters] = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[AuditLog], int]:
    """Newest-first page of audit entries plus the total match count."""
    conditions = []
    if filters is not None:
        if filters.action:
            conditions.append(AuditLog.action == filters.action)
        if filters.username:
            conditions.append(AuditLog.username.like(f"%{filters.username}%"))
        if filters.user_id is not None:
            conditions.append(AuditLog.user_id == filters.user_id)
        if filters.entity_id is not None:
            conditions.append(AuditLog.entity_id == filters.entity_id)
        if filters.reverted:
            conditions.append(AuditLog.reverted == filters.reverted)

    with storage_guard(db, "list audit logs"):
        q = db.query(AuditLog).filter(*conditions)
        total = q.count()
        items = (
            q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
    return items, total


def mark_audit_log_reverted(db: Session, log_id: int, actor_id: int, commit: bool = True) -> bool:
    """
    Flip reverted 'nao' → 'sim'. Returns False when nothing was claimed
    (entry missing or already reverted).
    """
    with storage_guard(db, "mark audit log reverted"):
        claimed = (
            db.query(AuditLog)
            .filter(AuditLog.id == log_id, AuditLog.reverted == YesNo.NO)
            .update(
                {
                    AuditLog.reverted: YesNo.YES,
                    AuditLog.reverted_at: datetime.utcnow(),
                    AuditLog.reverted_by: actor_id,
                },
                synchronize_session=False,
            )
        )
        if commit:
            db.commit()
        else:
            db.flush()
    return claimed > 0
