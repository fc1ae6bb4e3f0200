# app/schemas/vehicle.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from typing import Optional
from app.models.enums import InspectionStatus, YesNo


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamp columns hold naive UTC; offset-aware input is converted, naive input is taken as UTC."""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class VehicleBase(BaseModel):
    placa_original: Optional[str] = Field(None, max_length=10)
    placa_ostentada: Optional[str] = Field(None, max_length=10)
    marca: Optional[str] = Field(None, max_length=100)
    modelo: Optional[str] = Field(None, max_length=100)
    cor: Optional[str] = Field(None, max_length=50)
    ano: Optional[str] = Field(None, max_length=10)
    ano_modelo: Optional[str] = Field(None, max_length=10)
    chassi: Optional[str] = Field(None, max_length=50)
    combustivel: Optional[str] = Field(None, max_length=50)
    municipio: Optional[str] = Field(None, max_length=100)
    uf: Optional[str] = Field(None, max_length=2)
    numero_procedimento: Optional[str] = Field(None, max_length=20)   # 001-00001/2024
    numero_processo: Optional[str] = Field(None, max_length=30)       # 0000001-00.2024.8.26.0001
    observacoes: Optional[str] = Field(None, max_length=200)


class VehicleCreate(VehicleBase):
    status_pericia: InspectionStatus = InspectionStatus.PENDING
    devolvido: YesNo = YesNo.NO
    data_devolucao: Optional[datetime] = None

    @field_validator("data_devolucao")
    @classmethod
    def return_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class VehicleUpdate(VehicleBase):
    """Partial update — only fields explicitly sent are applied."""
    status_pericia: Optional[InspectionStatus] = None
    devolvido: Optional[YesNo] = None
    data_devolucao: Optional[datetime] = None

    @field_validator("data_devolucao")
    @classmethod
    def return_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class InspectionStatusUpdate(BaseModel):
    status: InspectionStatus


class VehicleFilters(BaseModel):
    search: Optional[str] = None
    status_pericia: Optional[InspectionStatus] = None
    devolvido: Optional[YesNo] = None
    data_inicio: Optional[datetime] = None
    data_fim: Optional[datetime] = None
    data_devolucao_inicio: Optional[datetime] = None
    data_devolucao_fim: Optional[datetime] = None

    @field_validator("data_inicio", "data_fim", "data_devolucao_inicio", "data_devolucao_fim")
    @classmethod
    def dates_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class VehicleOut(VehicleBase):
    id: int
    status_pericia: InspectionStatus
    devolvido: YesNo
    data_devolucao: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    created_by: Optional[int]

    class Config:
        from_attributes = True


class VehiclePage(BaseModel):
    items: list[VehicleOut]
    total: int
    page: int
    page_size: int

    class Config:
        from_attributes = True


class VehicleStats(BaseModel):
    total_geral: int = 0
    total_no_patio: int = 0
    total_devolvidos: int = 0
    pericias_pendentes: int = 0
    pericias_feitas: int = 0
    sem_pericia: int = 0
