# app/models/audit_log.py
"""
Audit log table — one row per mutating action (and per login).
previous_data / new_data hold versioned vehicle snapshots used by revert.
Rows are immutable except for the reverted flag fields, flipped once.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SAEnum, Index
from app.database import Base
from app.models.enums import AuditAction, EntityType, YesNo, enum_values


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(Integer, nullable=False, index=True)
    username = Column(String(64), nullable=False)      # denormalized at write time

    action = Column(SAEnum(AuditAction, name="audit_action", values_callable=enum_values),
                    nullable=False, index=True)
    entity_type = Column(SAEnum(EntityType, name="entity_type", values_callable=enum_values),
                         default=EntityType.VEHICLE, nullable=False)
    entity_id = Column(Integer)              # not a FK, vehicle may be gone

    description = Column(String(500), nullable=False)

    previous_data = Column(JSON)
    new_data = Column(JSON)

    reverted = Column(SAEnum(YesNo, name="reverted", values_callable=enum_values),
                      default=YesNo.NO, nullable=False)
    reverted_at = Column(DateTime)
    reverted_by = Column(Integer)
    reverts_log_id = Column(Integer)         # set on entries written by a revert

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return f"<AuditLog {self.id} action={self.action} entity={self.entity_id} reverted={self.reverted}>"
