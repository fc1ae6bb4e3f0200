# app/schemas/audit_log.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Any
from app.models.enums import AuditAction, EntityType, YesNo


class Actor(BaseModel):
    """Authenticated caller. How it was authenticated is not our concern."""
    user_id: int
    username: str = Field(..., max_length=64)


class AuditLogFilters(BaseModel):
    action: Optional[AuditAction] = None
    username: Optional[str] = None
    user_id: Optional[int] = None
    entity_id: Optional[int] = None
    reverted: Optional[YesNo] = None


class AuditLogOut(BaseModel):
    id: int
    user_id: int
    username: str
    action: AuditAction
    entity_type: EntityType
    entity_id: Optional[int]
    description: str
    previous_data: Optional[Any]     # snapshot dict; legacy rows may hold anything
    new_data: Optional[Any]
    reverted: YesNo
    reverted_at: Optional[datetime]
    reverted_by: Optional[int]
    reverts_log_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    items: list[AuditLogOut]
    total: int
    page: int
    page_size: int

    class Config:
        from_attributes = True


class RevertOut(BaseModel):
    success: bool = True
    log_id: int
    action: AuditAction
    vehicle_id: Optional[int]
    message: str
