# app/services/audit_service.py
"""
Audit recorder — writes one audit entry per mutating call, after the
mutation is durable. Used by impound_service and revert_service.

Recording is best-effort: a failed write is logged and swallowed so it can
never fail or undo the business operation that triggered it.
Descriptions are rendered here, from post-mutation state, and never
regenerated.
"""

from typing import Optional, Any
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.models.enums import AuditAction, EntityType, InspectionStatus
from app.schemas.audit_log import Actor
from app.services.audit_log_service import create_audit_log
from app.utils.logger import get_logger

logger = get_logger(__name__)

DESCRIPTION_MAX_LENGTH = 500


def record(
    db: Session,
    actor: Actor,
    action: AuditAction,
    entity_type: EntityType,
    entity_id: Optional[int],
    description: str,
    previous_data: Optional[dict[str, Any]] = None,
    new_data: Optional[dict[str, Any]] = None,
    reverts_log_id: Optional[int] = None,
) -> Optional[AuditLog]:
    """Persist an audit entry. Returns None (and logs) if the write fails."""
    entry = AuditLog(
        user_id=actor.user_id,
        username=actor.username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description[:DESCRIPTION_MAX_LENGTH],
        previous_data=previous_data,
        new_data=new_data,
        reverts_log_id=reverts_log_id,
    )
    try:
        entry = create_audit_log(db, entry)
    except Exception as e:
        logger.error(f"[Audit] Failed to record {action.value} by {actor.username}: {e}", exc_info=True)
        db.rollback()
        return None
    logger.info(f"[Audit][{action.value.upper()}] {entry.description}")
    return entry


def record_login(db: Session, actor: Actor) -> Optional[AuditLog]:
    """Login entries are a record only; they are never revertible."""
    return record(db, actor, AuditAction.LOGIN, EntityType.USER, actor.user_id,
                  f"User {actor.username} logged in")


# ── Descriptions ─────────────────────────────────────────────────────────────

def vehicle_label(vehicle) -> str:
    """ABC1234 (Volkswagen Gol) — works on ORM rows and decoded snapshots."""
    plate = vehicle.placa_original or vehicle.placa_ostentada or f"#{vehicle.id}"
    make_model = " ".join(part for part in (vehicle.marca, vehicle.modelo) if part)
    return f"{plate} ({make_model})" if make_model else plate


def describe_create(vehicle) -> str:
    return f"Registered vehicle {vehicle_label(vehicle)}"


def describe_edit(vehicle) -> str:
    return f"Edited vehicle {vehicle_label(vehicle)}"


def describe_delete(vehicle) -> str:
    return f"Deleted vehicle {vehicle_label(vehicle)}"


def describe_inspection(vehicle, status: InspectionStatus) -> str:
    return f"Set inspection status of vehicle {vehicle_label(vehicle)} to {InspectionStatus(status).value}"


def describe_return(vehicle) -> str:
    return f"Marked vehicle {vehicle_label(vehicle)} as returned"


def describe_undo_return(vehicle) -> str:
    return f"Undid return of vehicle {vehicle_label(vehicle)}"


def describe_revert(original: AuditLog) -> str:
    return f"Reverted action: {original.description}"
