# app/services/impound_service.py
"""
Caller-facing vehicle operations for the yard.

Each mutating operation follows the same sequence:
  1. validate the payload (formats, plate uniqueness); nothing is written on failure
  2. snapshot the current row, if any
  3. apply the transition through the record store
  4. record one audit entry with before/after snapshots

Missing vehicles yield None/False rather than an exception.
"""

from typing import Optional, Any, Union
from pydantic import BaseModel
from sqlalchemy.orm import Session
from app.models.enums import AuditAction, EntityType, InspectionStatus
from app.models.vehicle import Vehicle
from app.schemas.audit_log import Actor
from app.schemas.snapshot import TEXT_FIELDS
from app.services import vehicle_service
from app.services import audit_service
from app.services.snapshot_service import snapshot_vehicle
from app.services.vehicle_state import (
    validate_vehicle_fields,
    ensure_plate_available,
    reconcile_return_fields,
    return_changes,
    undo_return_changes,
    inspection_changes,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = TEXT_FIELDS + ("status_pericia", "devolvido", "data_devolucao")
NOT_NULL_FIELDS = ("status_pericia", "devolvido")

Payload = Union[BaseModel, dict[str, Any]]


def _payload(data: Payload, partial: bool) -> dict[str, Any]:
    """Editable fields from a schema or dict. Partial payloads keep only what was sent."""
    if isinstance(data, BaseModel):
        raw = data.model_dump(exclude_unset=partial)
    else:
        raw = dict(data)
    fields = {key: value for key, value in raw.items() if key in EDITABLE_FIELDS}
    for key in NOT_NULL_FIELDS:
        if key in fields and fields[key] is None:
            del fields[key]
    return fields


def create_vehicle(db: Session, data: Payload, actor: Actor) -> Vehicle:
    fields = validate_vehicle_fields(_payload(data, partial=False))
    ensure_plate_available(db, fields.get("placa_original"))
    fields = reconcile_return_fields(fields)
    fields["created_by"] = actor.user_id

    vehicle = vehicle_service.create_vehicle(db, fields)
    logger.info(f"[Impound] Vehicle {vehicle.id} registered by {actor.username}")

    audit_service.record(
        db, actor, AuditAction.CREATE_VEHICLE, EntityType.VEHICLE, vehicle.id,
        audit_service.describe_create(vehicle),
        new_data=snapshot_vehicle(vehicle),
    )
    return vehicle


def update_vehicle(db: Session, vehicle_id: int, data: Payload, actor: Actor) -> Optional[Vehicle]:
    fields = validate_vehicle_fields(_payload(data, partial=True))

    current = vehicle_service.get_vehicle_by_id(db, vehicle_id)
    if current is None:
        return None
    if "placa_original" in fields:
        ensure_plate_available(db, fields["placa_original"], exclude_id=vehicle_id)

    previous = snapshot_vehicle(current)
    fields = reconcile_return_fields(fields, current.devolvido)
    vehicle = vehicle_service.update_vehicle(db, vehicle_id, fields)
    if vehicle is None:
        return None

    audit_service.record(
        db, actor, AuditAction.EDIT_VEHICLE, EntityType.VEHICLE, vehicle.id,
        audit_service.describe_edit(vehicle),
        previous_data=previous, new_data=snapshot_vehicle(vehicle),
    )
    return vehicle


def delete_vehicle(db: Session, vehicle_id: int, actor: Actor) -> bool:
    current = vehicle_service.get_vehicle_by_id(db, vehicle_id)
    if current is None:
        return False

    previous = snapshot_vehicle(current)
    description = audit_service.describe_delete(current)
    deleted = vehicle_service.delete_vehicle(db, vehicle_id)
    if deleted:
        logger.info(f"[Impound] Vehicle {vehicle_id} deleted by {actor.username}")
        audit_service.record(
            db, actor, AuditAction.DELETE_VEHICLE, EntityType.VEHICLE, vehicle_id,
            description, previous_data=previous,
        )
    return deleted


def _transition(db: Session, vehicle_id: int, changes: dict[str, Any], actor: Actor,
                action: AuditAction, describe) -> Optional[Vehicle]:
    current = vehicle_service.get_vehicle_by_id(db, vehicle_id)
    if current is None:
        return None

    previous = snapshot_vehicle(current)
    vehicle = vehicle_service.update_vehicle(db, vehicle_id, changes)
    if vehicle is None:
        return None

    audit_service.record(
        db, actor, action, EntityType.VEHICLE, vehicle.id, describe(vehicle),
        previous_data=previous, new_data=snapshot_vehicle(vehicle),
    )
    return vehicle


def mark_as_returned(db: Session, vehicle_id: int, actor: Actor) -> Optional[Vehicle]:
    """Return to owner. Also completes the perícia, whatever its prior status."""
    return _transition(db, vehicle_id, return_changes(), actor,
                       AuditAction.MARK_RETURNED, audit_service.describe_return)


def undo_return(db: Session, vehicle_id: int, actor: Actor) -> Optional[Vehicle]:
    return _transition(db, vehicle_id, undo_return_changes(), actor,
                       AuditAction.UNDO_RETURN, audit_service.describe_undo_return)


def update_inspection_status(db: Session, vehicle_id: int, status: InspectionStatus,
                             actor: Actor) -> Optional[Vehicle]:
    # marcar_pericia when completing it, reverter_pericia for any other status
    status = InspectionStatus(status)
    action = AuditAction.MARK_INSPECTION if status == InspectionStatus.DONE else AuditAction.REVERT_INSPECTION
    return _transition(db, vehicle_id, inspection_changes(status), actor, action,
                       lambda vehicle: audit_service.describe_inspection(vehicle, status))
