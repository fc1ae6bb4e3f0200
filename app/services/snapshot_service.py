# app/services/snapshot_service.py
"""
Vehicle snapshot capture and decoding for the audit log.

A snapshot is the full field set of a vehicle at one point in time, stored
verbatim as JSON in audit_logs.previous_data / new_data. Decoding goes
through VehicleSnapshot so documents written under older schemas still
yield usable, typed values.
"""

from typing import Optional, Any
from app.models.vehicle import Vehicle
from app.schemas.snapshot import VehicleSnapshot, LEGACY_KEYS, TEXT_FIELDS
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Fields overwritten when a snapshot is restored onto an existing row
RESTORABLE_FIELDS = TEXT_FIELDS + ("status_pericia", "devolvido", "data_devolucao")


def snapshot_vehicle(vehicle: Vehicle) -> dict[str, Any]:
    """Capture the current state of a vehicle as a JSON-safe document."""
    snapshot = VehicleSnapshot(
        id=vehicle.id,
        status_pericia=vehicle.status_pericia,
        devolvido=vehicle.devolvido,
        data_devolucao=vehicle.data_devolucao,
        created_at=vehicle.created_at,
        updated_at=vehicle.updated_at,
        created_by=vehicle.created_by,
        **{field: getattr(vehicle, field) for field in TEXT_FIELDS},
    )
    return snapshot.model_dump(mode="json")


def decode_snapshot(data: Any) -> Optional[VehicleSnapshot]:
    """
    Decode a stored snapshot. Returns None when there is nothing usable
    (missing or not a mapping); never raises on bad field values.
    """
    if not isinstance(data, dict):
        return None
    if "schema_version" not in data:
        data = {LEGACY_KEYS.get(key, key): value for key, value in data.items()}
        data["schema_version"] = 0
        logger.debug(f"[Snapshot] Decoding unversioned snapshot for vehicle {data.get('id')}")
    return VehicleSnapshot.model_validate(data)


def restorable_fields(snapshot: VehicleSnapshot) -> dict[str, Any]:
    """Every restorable vehicle field, taken verbatim from the snapshot."""
    return {field: getattr(snapshot, field) for field in RESTORABLE_FIELDS}
