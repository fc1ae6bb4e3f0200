# app/services/vehicle_state.py
"""
Vehicle lifecycle rules: field formats, perícia status and return status.

Coupling between the two status fields:
  - returning a vehicle forces status_pericia = feita, whatever it was
  - undoing a return clears the return date but leaves status_pericia alone
  - setting status_pericia never touches the return fields

The *_changes() helpers produce the field set a transition writes, so the
record store can apply it in one update. apply_*() do the same on any
object carrying the vehicle attributes.
"""

import re
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Session
from app.exceptions import InputValidationError, ConflictError
from app.models.enums import InspectionStatus, YesNo
from app.schemas.vehicle import as_naive_utc
from app.services.vehicle_service import find_vehicle_by_plate
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Procedimento: xxx-xxxxx/ano (ex: 001-00001/2024)
PROCEDURE_NUMBER_RE = re.compile(r"^\d{3}-\d{5}/\d{4}$")
# Processo: xxxxxxx-xx.xxxx.x.xx.xxxx (ex: 0000001-00.2024.8.26.0001)
PROCESS_NUMBER_RE = re.compile(r"^\d{7}-\d{2}\.\d{4}\.\d\.\d{2}\.\d{4}$")
# Stored plates: uppercase alphanumeric, 7–8 chars
STORED_PLATE_RE = re.compile(r"^[A-Z0-9]{7,8}$")
# Old format ABC1234 or Mercosul ABC1D23
PLATE_FORMAT_RE = re.compile(r"^[A-Z]{3}[0-9][A-Z0-9][0-9]{2}$")

PLATE_FIELDS = ("placa_original", "placa_ostentada")


# ── Formats ──────────────────────────────────────────────────────────────────

def normalize_plate(plate: Optional[str]) -> Optional[str]:
    """Strip dashes/whitespace and uppercase. Blank input becomes None."""
    if plate is None:
        return None
    normalized = re.sub(r"[-\s]", "", plate).upper()
    return normalized or None


def is_valid_plate_format(plate: str) -> bool:
    """Strict old/Mercosul check, used before external plate lookups."""
    return bool(PLATE_FORMAT_RE.match(normalize_plate(plate) or ""))


def validate_vehicle_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and normalize a create/update payload.
    Raises InputValidationError on the first bad field; never partially applies.
    """
    cleaned = dict(fields)

    procedure = cleaned.get("numero_procedimento")
    if procedure and not PROCEDURE_NUMBER_RE.match(procedure):
        raise InputValidationError(
            f"Invalid procedure number '{procedure}'. Use xxx-xxxxx/yyyy (e.g. 001-00001/2024)"
        )

    process = cleaned.get("numero_processo")
    if process and not PROCESS_NUMBER_RE.match(process):
        raise InputValidationError(
            f"Invalid process number '{process}'. "
            "Use xxxxxxx-xx.xxxx.x.xx.xxxx (e.g. 0000001-00.2024.8.26.0001)"
        )

    for field in PLATE_FIELDS:
        if field not in cleaned:
            continue
        plate = normalize_plate(cleaned[field])
        if plate is not None and not STORED_PLATE_RE.match(plate):
            raise InputValidationError(
                f"Invalid plate '{cleaned[field]}'. Expected 7–8 letters/digits (e.g. ABC1234 or ABC1D23)"
            )
        cleaned[field] = plate

    observacoes = cleaned.get("observacoes")
    if observacoes is not None and len(observacoes) > 200:
        raise InputValidationError("Observations are limited to 200 characters")

    if isinstance(cleaned.get("data_devolucao"), datetime):
        cleaned["data_devolucao"] = as_naive_utc(cleaned["data_devolucao"])

    # Blank case numbers are stored as NULL
    for field in ("numero_procedimento", "numero_processo"):
        if field in cleaned and not cleaned[field]:
            cleaned[field] = None

    return cleaned


def ensure_plate_available(db: Session, plate: Optional[str], exclude_id: Optional[int] = None):
    """
    Raise ConflictError if another vehicle already holds this original plate.
    Advisory read; the unique index on placa_original is the final guard.
    """
    if not plate:
        return
    existing = find_vehicle_by_plate(db, plate, exclude_id=exclude_id)
    if existing is not None:
        logger.info(f"[State] Plate {plate} already registered on vehicle {existing.id}")
        raise ConflictError(f"Plate {plate} is already registered (vehicle {existing.id})")


# ── Transitions ──────────────────────────────────────────────────────────────

def return_changes(now: Optional[datetime] = None) -> dict[str, Any]:
    return {
        "devolvido": YesNo.YES,
        "data_devolucao": now or datetime.utcnow(),
        "status_pericia": InspectionStatus.DONE,
    }


def undo_return_changes() -> dict[str, Any]:
    return {"devolvido": YesNo.NO, "data_devolucao": None}


def inspection_changes(status: InspectionStatus) -> dict[str, Any]:
    return {"status_pericia": InspectionStatus(status)}


def _apply(vehicle, changes: dict[str, Any]):
    for field, value in changes.items():
        setattr(vehicle, field, value)
    return vehicle


def apply_return(vehicle, now: Optional[datetime] = None):
    """Mark returned. Always forces perícia to 'feita'; timestamp advances on every call."""
    return _apply(vehicle, return_changes(now))


def undo_return(vehicle):
    """Clear the return. status_pericia is left exactly as it was."""
    return _apply(vehicle, undo_return_changes())


def set_inspection_status(vehicle, status: InspectionStatus):
    return _apply(vehicle, inspection_changes(status))


def reconcile_return_fields(fields: dict[str, Any], current_devolvido: Optional[YesNo] = None) -> dict[str, Any]:
    """
    Route a devolvido change inside a generic payload through the return
    transitions so data_devolucao stays set iff devolvido = 'sim'.
    """
    fields = dict(fields)
    if fields.get("devolvido") is None:
        fields.pop("devolvido", None)
        # A bare return date is only meaningful on a returned vehicle
        if current_devolvido != YesNo.YES or fields.get("data_devolucao") is None:
            fields.pop("data_devolucao", None)
        return fields

    reconciled = dict(fields)
    if YesNo(fields["devolvido"]) == YesNo.YES:
        if current_devolvido != YesNo.YES:
            reconciled.update(return_changes(fields.get("data_devolucao")))
        elif not reconciled.get("data_devolucao"):
            reconciled.pop("data_devolucao", None)
    else:
        reconciled.update(undo_return_changes())
    return reconciled
