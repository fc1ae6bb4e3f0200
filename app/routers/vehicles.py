"""Vehicle yard endpoints — registration, edits, status transitions, listing."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.dependencies import get_actor
from app.models.enums import InspectionStatus, YesNo
from app.schemas.audit_log import Actor
from app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleOut, VehiclePage, VehicleStats,
    VehicleFilters, InspectionStatusUpdate,
)
from app.services import impound_service, vehicle_service

router = APIRouter()


def vehicle_filters(
    search: Optional[str] = None,
    status_pericia: Optional[InspectionStatus] = None,
    devolvido: Optional[YesNo] = None,
    data_inicio: Optional[datetime] = None,
    data_fim: Optional[datetime] = None,
    data_devolucao_inicio: Optional[datetime] = None,
    data_devolucao_fim: Optional[datetime] = None,
) -> VehicleFilters:
    return VehicleFilters(
        search=search, status_pericia=status_pericia, devolvido=devolvido,
        data_inicio=data_inicio, data_fim=data_fim,
        data_devolucao_inicio=data_devolucao_inicio, data_devolucao_fim=data_devolucao_fim,
    )


def _found(vehicle):
    if vehicle is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


@router.get("/vehicles", response_model=VehiclePage, summary="List vehicles — filter, sort, paginate")
def list_vehicles(
    filters: VehicleFilters = Depends(vehicle_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items, total = vehicle_service.list_vehicles(db, filters, page, page_size, sort_by, sort_order)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/vehicles/stats", response_model=VehicleStats, summary="Dashboard counters")
def get_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return vehicle_service.get_vehicle_stats(db)


@router.get("/vehicles/export", response_model=list[VehicleOut], summary="All matching rows for CSV/Excel export")
def export_vehicles(
    filters: VehicleFilters = Depends(vehicle_filters),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return vehicle_service.list_vehicles_for_export(db, filters)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut, summary="Get one vehicle")
def get_vehicle(vehicle_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return _found(vehicle_service.get_vehicle_by_id(db, vehicle_id))


@router.post("/vehicles", response_model=VehicleOut, status_code=status.HTTP_201_CREATED,
             summary="Register an impounded vehicle")
def create_vehicle(body: VehicleCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return impound_service.create_vehicle(db, body, actor)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleOut, summary="Edit a vehicle")
def update_vehicle(vehicle_id: int, body: VehicleUpdate, db: Session = Depends(get_db),
                   actor: Actor = Depends(get_actor)):
    return _found(impound_service.update_vehicle(db, vehicle_id, body, actor))


@router.delete("/vehicles/{vehicle_id}", summary="Remove a vehicle")
def delete_vehicle(vehicle_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return {"success": impound_service.delete_vehicle(db, vehicle_id, actor)}


@router.post("/vehicles/{vehicle_id}/return", response_model=VehicleOut,
             summary="Mark as returned to owner (also completes perícia)")
def mark_as_returned(vehicle_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return _found(impound_service.mark_as_returned(db, vehicle_id, actor))


@router.post("/vehicles/{vehicle_id}/undo-return", response_model=VehicleOut, summary="Undo a return")
def undo_return(vehicle_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return _found(impound_service.undo_return(db, vehicle_id, actor))


@router.put("/vehicles/{vehicle_id}/pericia", response_model=VehicleOut, summary="Set perícia status")
def update_inspection_status(vehicle_id: int, body: InspectionStatusUpdate, db: Session = Depends(get_db),
                             actor: Actor = Depends(get_actor)):
    return _found(impound_service.update_inspection_status(db, vehicle_id, body.status, actor))
