"""Activity log — listing and revert."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.dependencies import get_actor
from app.models.enums import AuditAction, YesNo
from app.schemas.audit_log import Actor, AuditLogFilters, AuditLogPage, RevertOut
from app.services import revert_service
from app.services.audit_log_service import list_audit_logs

router = APIRouter()


@router.get("/audit-logs", response_model=AuditLogPage, summary="List activity log entries")
def get_audit_logs(
    action: Optional[AuditAction] = None,
    username: Optional[str] = None,
    user_id: Optional[int] = None,
    entity_id: Optional[int] = None,
    reverted: Optional[YesNo] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.AUDIT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    filters = AuditLogFilters(action=action, username=username, user_id=user_id,
                              entity_id=entity_id, reverted=reverted)
    items, total = list_audit_logs(db, filters, page, page_size)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/audit-logs/{log_id}/revert", response_model=RevertOut, summary="Revert a logged action")
def revert_audit_log(log_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return revert_service.revert_audit_entry(db, log_id, actor)
