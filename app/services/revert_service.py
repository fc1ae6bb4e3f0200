# app/services/revert_service.py
"""
Revert engine — undoes the effect of one audit entry, exactly once.

Entry lifecycle: active --revert--> reverted (terminal).

Inverse per action:
  criar_veiculo                  → delete the vehicle (already gone is fine)
  editar_veiculo, marcar_pericia,
  reverter_pericia, marcar_devolvido,
  desfazer_devolucao             → overwrite every field from previous_data
  excluir_veiculo                → recreate from previous_data under a new id

The entry is claimed with a conditional UPDATE (reverted = 'nao') and the
inverse is applied in the same transaction, so concurrent reverts of one
entry cannot both apply. The revert is then recorded as a new audit entry
carrying reverts_log_id; such entries are not themselves revertible.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Session
from app.exceptions import NotFoundError, InvalidStateError, UnsupportedActionError, BadRequestError
from app.models.audit_log import AuditLog
from app.models.enums import AuditAction, EntityType, YesNo
from app.schemas.audit_log import Actor, RevertOut
from app.schemas.snapshot import VehicleSnapshot
from app.services import audit_service
from app.services import vehicle_service
from app.services.audit_log_service import get_audit_log_by_id, mark_audit_log_reverted
from app.services.snapshot_service import decode_snapshot, restorable_fields, snapshot_vehicle
from app.services.vehicle_state import ensure_plate_available
from app.utils.logger import get_logger

logger = get_logger(__name__)

RESTORE_ACTIONS = {
    AuditAction.EDIT_VEHICLE,
    AuditAction.MARK_INSPECTION,
    AuditAction.REVERT_INSPECTION,
    AuditAction.MARK_RETURNED,
    AuditAction.UNDO_RETURN,
}


@dataclass
class _Inverse:
    vehicle_id: Optional[int]
    previous_data: Optional[dict[str, Any]]
    new_data: Optional[dict[str, Any]]
    message: str


def _ensure_revertible(entry: AuditLog):
    if entry.action == AuditAction.LOGIN:
        raise UnsupportedActionError("Login actions cannot be reverted")
    if entry.entity_type != EntityType.VEHICLE or entry.entity_id is None:
        raise UnsupportedActionError("Only vehicle actions can be reverted")
    if entry.reverts_log_id is not None:
        raise UnsupportedActionError(
            f"This entry records the revert of entry {entry.reverts_log_id} and cannot be reverted"
        )


def _require_snapshot(entry: AuditLog) -> VehicleSnapshot:
    snapshot = decode_snapshot(entry.previous_data)
    if snapshot is None:
        raise BadRequestError("No previous data available to revert this action")
    return snapshot


def _snapshot_fields(snapshot: VehicleSnapshot) -> dict[str, Any]:
    """Restorable fields with the return-date invariant re-established."""
    fields = restorable_fields(snapshot)
    if fields["devolvido"] == YesNo.NO:
        fields["data_devolucao"] = None
    elif fields["data_devolucao"] is None:
        # Older snapshots could carry devolvido without a date
        fields["data_devolucao"] = snapshot.updated_at or datetime.utcnow()
    return fields


def _undo_create(db: Session, entry: AuditLog) -> _Inverse:
    vehicle = vehicle_service.get_vehicle_by_id(db, entry.entity_id)
    previous = snapshot_vehicle(vehicle) if vehicle is not None else None
    if not vehicle_service.delete_vehicle(db, entry.entity_id, commit=False):
        logger.info(f"[Revert] Vehicle {entry.entity_id} already removed, nothing to delete")
        return _Inverse(entry.entity_id, None, None, "Vehicle was already removed")
    return _Inverse(entry.entity_id, previous, None, f"Vehicle {entry.entity_id} removed")


def _restore(db: Session, entry: AuditLog) -> _Inverse:
    snapshot = _require_snapshot(entry)
    current = vehicle_service.get_vehicle_by_id(db, entry.entity_id)
    if current is None:
        raise NotFoundError(f"Vehicle {entry.entity_id} no longer exists")
    ensure_plate_available(db, snapshot.placa_original, exclude_id=entry.entity_id)

    previous = snapshot_vehicle(current)
    vehicle = vehicle_service.update_vehicle(db, entry.entity_id, _snapshot_fields(snapshot), commit=False)
    return _Inverse(vehicle.id, previous, snapshot_vehicle(vehicle),
                    f"Vehicle {vehicle.id} restored to its previous state")


def _recreate(db: Session, entry: AuditLog) -> _Inverse:
    snapshot = _require_snapshot(entry)
    ensure_plate_available(db, snapshot.placa_original)

    fields = _snapshot_fields(snapshot)
    fields["created_by"] = snapshot.created_by
    # Ids are never reused: older entries for entity_id stay pointing at the deleted row
    vehicle = vehicle_service.create_vehicle(db, fields, commit=False)
    return _Inverse(vehicle.id, None, snapshot_vehicle(vehicle),
                    f"Vehicle recreated with id {vehicle.id} (was {entry.entity_id})")


def _inverse_for(action: AuditAction):
    if action == AuditAction.CREATE_VEHICLE:
        return _undo_create
    if action == AuditAction.DELETE_VEHICLE:
        return _recreate
    if action in RESTORE_ACTIONS:
        return _restore
    raise UnsupportedActionError(f"Action '{action.value}' cannot be reverted")


def revert_audit_entry(db: Session, log_id: int, actor: Actor) -> RevertOut:
    """
    Revert one audit entry.
    Raises NotFoundError, InvalidStateError (already reverted),
    UnsupportedActionError, BadRequestError (no snapshot), ConflictError.
    """
    entry = get_audit_log_by_id(db, log_id)
    if entry is None:
        raise NotFoundError(f"Audit log {log_id} not found")
    if entry.reverted == YesNo.YES:
        raise InvalidStateError("This action has already been reverted")
    _ensure_revertible(entry)
    inverse = _inverse_for(entry.action)

    if not mark_audit_log_reverted(db, log_id, actor.user_id, commit=False):
        db.rollback()
        raise InvalidStateError("This action has already been reverted")
    try:
        outcome = inverse(db, entry)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"[Revert] Entry {log_id} ({entry.action.value}) reverted by {actor.username}: {outcome.message}")
    audit_service.record(
        db, actor, entry.action, EntityType.VEHICLE, outcome.vehicle_id,
        audit_service.describe_revert(entry),
        previous_data=outcome.previous_data, new_data=outcome.new_data,
        reverts_log_id=entry.id,
    )
    return RevertOut(log_id=log_id, action=entry.action, vehicle_id=outcome.vehicle_id, message=outcome.message)
