# app/schemas/snapshot.py
"""
Typed, versioned vehicle snapshot stored in audit_logs.previous_data/new_data.

Stored documents may predate the current field set (older schema versions,
or the flat camelCase documents written before versioning), so every field
is coerced defensively on the way in instead of failing validation:
  - unknown/missing enum values fall back to the safe default
  - unparsable dates become None
  - non-string text fields become None
"""

from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, field_validator
from app.models.enums import InspectionStatus, YesNo
from app.schemas.vehicle import as_naive_utc

SNAPSHOT_SCHEMA_VERSION = 1

TEXT_FIELDS = (
    "placa_original", "placa_ostentada", "marca", "modelo", "cor", "ano",
    "ano_modelo", "chassi", "combustivel", "municipio", "uf",
    "numero_procedimento", "numero_processo", "observacoes",
)

# Keys used by unversioned snapshots
LEGACY_KEYS = {
    "placaOriginal": "placa_original",
    "placaOstentada": "placa_ostentada",
    "anoModelo": "ano_modelo",
    "numeroProcedimento": "numero_procedimento",
    "numeroProcesso": "numero_processo",
    "statusPericia": "status_pericia",
    "dataDevolucao": "data_devolucao",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "createdBy": "created_by",
}


class VehicleSnapshot(BaseModel):
    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    id: Optional[int] = None

    placa_original: Optional[str] = None
    placa_ostentada: Optional[str] = None
    marca: Optional[str] = None
    modelo: Optional[str] = None
    cor: Optional[str] = None
    ano: Optional[str] = None
    ano_modelo: Optional[str] = None
    chassi: Optional[str] = None
    combustivel: Optional[str] = None
    municipio: Optional[str] = None
    uf: Optional[str] = None
    numero_procedimento: Optional[str] = None
    numero_processo: Optional[str] = None
    observacoes: Optional[str] = None

    status_pericia: InspectionStatus = InspectionStatus.PENDING
    devolvido: YesNo = YesNo.NO
    data_devolucao: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[int] = None

    @field_validator("schema_version", mode="before")
    @classmethod
    def _version(cls, value: Any) -> int:
        return value if isinstance(value, int) and not isinstance(value, bool) else 0

    @field_validator("id", "created_by", mode="before")
    @classmethod
    def _int_or_none(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("status_pericia", mode="before")
    @classmethod
    def _inspection_status(cls, value: Any) -> InspectionStatus:
        try:
            return InspectionStatus(value)
        except (ValueError, TypeError):
            return InspectionStatus.PENDING

    @field_validator("devolvido", mode="before")
    @classmethod
    def _returned(cls, value: Any) -> YesNo:
        try:
            return YesNo(value)
        except (ValueError, TypeError):
            return YesNo.NO

    @field_validator("data_devolucao", "created_at", "updated_at", mode="before")
    @classmethod
    def _date_or_none(cls, value: Any) -> Optional[datetime]:
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        if not isinstance(value, datetime):
            return None
        return as_naive_utc(value)
