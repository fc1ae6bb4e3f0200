# app/services/vehicle_service.py
"""
Record store for vehicles — pure data access, no lifecycle policy.
Every call takes the session explicitly. Connection failures surface as
StorageUnavailableError; "not found" is None/False, never an exception.

Mutations accept commit=False so a caller can compose several writes into
one transaction (the revert engine does).
"""

from typing import Optional, Any
from sqlalchemy import or_, func, case, asc, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.database import storage_guard
from app.exceptions import ConflictError
from app.models.enums import InspectionStatus, YesNo
from app.models.vehicle import Vehicle
from app.schemas.vehicle import VehicleFilters
from app.utils.logger import get_logger

logger = get_logger(__name__)

SORTABLE_COLUMNS = {
    "id": Vehicle.id,
    "placa_original": Vehicle.placa_original,
    "placa_ostentada": Vehicle.placa_ostentada,
    "marca": Vehicle.marca,
    "modelo": Vehicle.modelo,
    "cor": Vehicle.cor,
    "ano": Vehicle.ano,
    "ano_modelo": Vehicle.ano_modelo,
    "chassi": Vehicle.chassi,
    "municipio": Vehicle.municipio,
    "uf": Vehicle.uf,
    "numero_procedimento": Vehicle.numero_procedimento,
    "numero_processo": Vehicle.numero_processo,
    "status_pericia": Vehicle.status_pericia,
    "devolvido": Vehicle.devolvido,
    "data_devolucao": Vehicle.data_devolucao,
    "created_at": Vehicle.created_at,
    "updated_at": Vehicle.updated_at,
}


def _finish(db: Session, commit: bool):
    """Flush (and optionally commit), mapping a plate collision to ConflictError."""
    try:
        if commit:
            db.commit()
        else:
            db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"[Vehicles] Write rejected by unique plate index: {e.orig}")
        raise ConflictError("Plate is already registered on another vehicle") from e


def create_vehicle(db: Session, fields: dict[str, Any], commit: bool = True) -> Vehicle:
    with storage_guard(db, "create vehicle"):
        vehicle = Vehicle(**fields)
        db.add(vehicle)
        _finish(db, commit)
        db.refresh(vehicle)
        return vehicle


def update_vehicle(db: Session, vehicle_id: int, fields: dict[str, Any], commit: bool = True) -> Optional[Vehicle]:
    """Apply a partial field set. Returns None if the vehicle does not exist."""
    with storage_guard(db, "update vehicle"):
        vehicle = db.get(Vehicle, vehicle_id)
        if vehicle is None:
            return None
        for field, value in fields.items():
            setattr(vehicle, field, value)
        _finish(db, commit)
        db.refresh(vehicle)
        return vehicle


def delete_vehicle(db: Session, vehicle_id: int, commit: bool = True) -> bool:
    with storage_guard(db, "delete vehicle"):
        vehicle = db.get(Vehicle, vehicle_id)
        if vehicle is None:
            return False
        db.delete(vehicle)
        _finish(db, commit)
        return True


def get_vehicle_by_id(db: Session, vehicle_id: int) -> Optional[Vehicle]:
    with storage_guard(db, "get vehicle"):
        return db.get(Vehicle, vehicle_id)


def find_vehicle_by_plate(db: Session, plate: str, exclude_id: Optional[int] = None) -> Optional[Vehicle]:
    """Find a vehicle by original plate, optionally ignoring one id (the row being updated)."""
    with storage_guard(db, "look up plate"):
        q = db.query(Vehicle).filter(Vehicle.placa_original == plate)
        if exclude_id is not None:
            q = q.filter(Vehicle.id != exclude_id)
        return q.first()


def _filter_conditions(filters: Optional[VehicleFilters]) -> list:
    if filters is None:
        return []
    conditions = []
    if filters.search:
        term = f"%{filters.search}%"
        conditions.append(or_(
            Vehicle.placa_original.like(term),
            Vehicle.placa_ostentada.like(term),
            Vehicle.numero_processo.like(term),
            Vehicle.numero_procedimento.like(term),
        ))
    if filters.status_pericia:
        conditions.append(Vehicle.status_pericia == filters.status_pericia)
    if filters.devolvido:
        conditions.append(Vehicle.devolvido == filters.devolvido)
    if filters.data_inicio:
        conditions.append(Vehicle.created_at >= filters.data_inicio)
    if filters.data_fim:
        conditions.append(Vehicle.created_at <= filters.data_fim)
    if filters.data_devolucao_inicio:
        conditions.append(Vehicle.data_devolucao >= filters.data_devolucao_inicio)
    if filters.data_devolucao_fim:
        conditions.append(Vehicle.data_devolucao <= filters.data_devolucao_fim)
    return conditions


def list_vehicles(
    db: Session,
    filters: Optional[VehicleFilters] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> tuple[list[Vehicle], int]:
    """Filtered, sorted page of vehicles plus the total match count."""
    conditions = _filter_conditions(filters)
    column = SORTABLE_COLUMNS.get(sort_by, Vehicle.created_at)
    order = asc if sort_order == "asc" else desc

    with storage_guard(db, "list vehicles"):
        total = db.query(func.count(Vehicle.id)).filter(*conditions).scalar() or 0
        items = (
            db.query(Vehicle)
            .filter(*conditions)
            .order_by(order(column), order(Vehicle.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
    return items, total


def list_vehicles_for_export(db: Session, filters: Optional[VehicleFilters] = None) -> list[Vehicle]:
    """Every matching vehicle, newest first. Rows feed the CSV/Excel exporter."""
    with storage_guard(db, "export vehicles"):
        return (
            db.query(Vehicle)
            .filter(*_filter_conditions(filters))
            .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
            .all()
        )


def get_vehicle_stats(db: Session) -> dict[str, int]:
    def _count_where(condition):
        return func.sum(case((condition, 1), else_=0))

    with storage_guard(db, "get stats"):
        row = db.query(
            func.count(Vehicle.id),
            _count_where(Vehicle.devolvido == YesNo.NO),
            _count_where(Vehicle.devolvido == YesNo.YES),
            _count_where(Vehicle.status_pericia == InspectionStatus.PENDING),
            _count_where(Vehicle.status_pericia == InspectionStatus.DONE),
            _count_where(Vehicle.status_pericia == InspectionStatus.NOT_APPLICABLE),
        ).one()

    keys = ("total_geral", "total_no_patio", "total_devolvidos",
            "pericias_pendentes", "pericias_feitas", "sem_pericia")
    return {key: int(value or 0) for key, value in zip(keys, row)}
