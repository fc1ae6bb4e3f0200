# app/models/vehicle.py
"""
Impounded vehicles table.
A vehicle may carry two plates: the original one and the displayed one
(cloned/fraudulent plate). Perícia and return status live on the row.
data_devolucao is set iff devolvido = 'sim'.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Enum as SAEnum, Index
from app.database import Base
from app.models.enums import InspectionStatus, YesNo, enum_values


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Plates; only the original one is unique
    placa_original = Column(String(10), unique=True, index=True)
    placa_ostentada = Column(String(10), index=True)

    marca = Column(String(100))
    modelo = Column(String(100))
    cor = Column(String(50))
    ano = Column(String(10))
    ano_modelo = Column(String(10))
    chassi = Column(String(50))
    combustivel = Column(String(50))
    municipio = Column(String(100))
    uf = Column(String(2))

    numero_procedimento = Column(String(20), index=True)   # 001-00001/2024
    numero_processo = Column(String(30), index=True)       # 0000001-00.2024.8.26.0001
    observacoes = Column(String(200))

    status_pericia = Column(
        SAEnum(InspectionStatus, name="status_pericia", values_callable=enum_values),
        default=InspectionStatus.PENDING,
        nullable=False,
    )
    devolvido = Column(
        SAEnum(YesNo, name="devolvido", values_callable=enum_values),
        default=YesNo.NO,
        nullable=False,
    )
    data_devolucao = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    created_by = Column(Integer)             # users.id (nullable, not a FK)

    __table_args__ = (
        Index("idx_status", "devolvido", "status_pericia"),
    )

    def __repr__(self):
        return f"<Vehicle {self.id} plate={self.placa_original} pericia={self.status_pericia} devolvido={self.devolvido}>"
