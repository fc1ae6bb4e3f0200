# app/models/enums.py
"""
Closed value sets shared by the vehicle and audit-log tables.
Values are the persisted strings and must not change.
"""

import enum


class InspectionStatus(str, enum.Enum):
    PENDING = "pendente"
    NOT_APPLICABLE = "sem_pericia"
    DONE = "feita"


class YesNo(str, enum.Enum):
    YES = "sim"
    NO = "nao"


class AuditAction(str, enum.Enum):
    LOGIN = "login"
    CREATE_VEHICLE = "criar_veiculo"
    EDIT_VEHICLE = "editar_veiculo"
    DELETE_VEHICLE = "excluir_veiculo"
    MARK_INSPECTION = "marcar_pericia"
    REVERT_INSPECTION = "reverter_pericia"
    MARK_RETURNED = "marcar_devolvido"
    UNDO_RETURN = "desfazer_devolucao"


class EntityType(str, enum.Enum):
    VEHICLE = "vehicle"
    USER = "user"


def enum_values(enum_cls):
    """Persist .value rather than the member name."""
    return [member.value for member in enum_cls]
