"""Integration tests for the revert engine (SQLite session)."""

import pytest
from datetime import datetime
from app.exceptions import (
    NotFoundError, InvalidStateError, UnsupportedActionError, BadRequestError, ConflictError,
)
from app.models.audit_log import AuditLog
from app.models.enums import AuditAction, EntityType, InspectionStatus, YesNo
from app.models.vehicle import Vehicle
from app.schemas.vehicle import VehicleUpdate
from app.services import audit_service, impound_service
from app.services.audit_log_service import mark_audit_log_reverted
from app.services.revert_service import revert_audit_entry


def last_entry(db, action=None):
    q = db.query(AuditLog)
    if action is not None:
        q = q.filter(AuditLog.action == action)
    return q.order_by(AuditLog.id.desc()).first()


class TestRevertGuards:
    def test_missing_entry_not_found(self, db, actor):
        with pytest.raises(NotFoundError):
            revert_audit_entry(db, 12345, actor)

    def test_login_not_revertible(self, db, actor):
        entry = audit_service.record_login(db, actor)
        with pytest.raises(UnsupportedActionError):
            revert_audit_entry(db, entry.id, actor)
        db.refresh(entry)
        assert entry.reverted == YesNo.NO

    def test_entry_without_entity_not_revertible(self, db, actor):
        entry = audit_service.record(db, actor, AuditAction.EDIT_VEHICLE, EntityType.VEHICLE, None, "orphan")
        with pytest.raises(UnsupportedActionError):
            revert_audit_entry(db, entry.id, actor)

    def test_second_revert_is_rejected_without_side_effects(self, db, actor, other_actor, make_vehicle):
        vehicle = make_vehicle(cor="Prata")
        impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(cor="Preto"), actor)
        edit = last_entry(db, AuditAction.EDIT_VEHICLE)

        revert_audit_entry(db, edit.id, other_actor)
        db.refresh(edit)
        assert edit.reverted == YesNo.YES
        assert edit.reverted_by == other_actor.user_id
        assert edit.reverted_at is not None
        entries_after_first = db.query(AuditLog).count()

        impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(cor="Branco"), actor)
        with pytest.raises(InvalidStateError):
            revert_audit_entry(db, edit.id, other_actor)
        assert db.get(Vehicle, vehicle.id).cor == "Branco"
        assert db.query(AuditLog).count() == entries_after_first + 1

    def test_conditional_claim_only_succeeds_once(self, db, actor, make_vehicle):
        make_vehicle()
        entry = last_entry(db)
        assert mark_audit_log_reverted(db, entry.id, actor.user_id) is True
        assert mark_audit_log_reverted(db, entry.id, actor.user_id) is False

    def test_missing_previous_snapshot_is_bad_request(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        entry = audit_service.record(db, actor, AuditAction.EDIT_VEHICLE, EntityType.VEHICLE, vehicle.id,
                                     "Edited vehicle without snapshot")
        with pytest.raises(BadRequestError):
            revert_audit_entry(db, entry.id, actor)
        db.refresh(entry)
        assert entry.reverted == YesNo.NO
        assert entry.reverted_at is None

    def test_revert_entries_are_not_revertible(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        impound_service.update_inspection_status(db, vehicle.id, InspectionStatus.DONE, actor)
        revert_audit_entry(db, last_entry(db).id, actor)

        revert_entry = last_entry(db)
        assert revert_entry.reverts_log_id is not None
        with pytest.raises(UnsupportedActionError):
            revert_audit_entry(db, revert_entry.id, actor)


class TestRevertCreate:
    def test_revert_create_deletes_vehicle(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        vehicle_id = vehicle.id
        create_entry = last_entry(db, AuditAction.CREATE_VEHICLE)

        result = revert_audit_entry(db, create_entry.id, actor)

        assert result.vehicle_id == vehicle_id
        assert db.get(Vehicle, vehicle_id) is None
        revert_entry = last_entry(db)
        assert revert_entry.action == AuditAction.CREATE_VEHICLE
        assert revert_entry.reverts_log_id == create_entry.id
        assert revert_entry.description == "Reverted action: Registered vehicle ABC1234 (Volkswagen Gol)"
        assert revert_entry.previous_data["id"] == vehicle_id

    def test_revert_create_tolerates_vehicle_already_gone(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        create_entry = last_entry(db, AuditAction.CREATE_VEHICLE)
        impound_service.delete_vehicle(db, vehicle.id, actor)

        result = revert_audit_entry(db, create_entry.id, actor)

        assert result.success is True
        db.refresh(create_entry)
        assert create_entry.reverted == YesNo.YES


class TestRevertRestore:
    def test_revert_edit_restores_every_field(self, db, actor, make_vehicle):
        vehicle = make_vehicle(marca="Fiat", modelo="Uno", cor="Azul", observacoes="Sem rodas")
        impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(cor="Preto"), actor)
        first_edit = last_entry(db, AuditAction.EDIT_VEHICLE)
        impound_service.update_vehicle(
            db, vehicle.id, VehicleUpdate(marca="Chevrolet", observacoes=None), actor)
        impound_service.mark_as_returned(db, vehicle.id, actor)

        revert_audit_entry(db, first_edit.id, actor)

        restored = db.get(Vehicle, vehicle.id)
        db.refresh(restored)
        assert restored.cor == "Azul"
        assert restored.marca == "Fiat"
        assert restored.modelo == "Uno"
        assert restored.observacoes == "Sem rodas"
        assert restored.devolvido == YesNo.NO
        assert restored.data_devolucao is None
        assert restored.status_pericia == InspectionStatus.PENDING

    def test_revert_return_restores_prior_status(self, db, actor, make_vehicle):
        vehicle = make_vehicle(status_pericia="sem_pericia")
        impound_service.mark_as_returned(db, vehicle.id, actor)

        revert_audit_entry(db, last_entry(db, AuditAction.MARK_RETURNED).id, actor)

        restored = db.get(Vehicle, vehicle.id)
        db.refresh(restored)
        assert restored.devolvido == YesNo.NO
        assert restored.data_devolucao is None
        assert restored.status_pericia == InspectionStatus.NOT_APPLICABLE

    def test_revert_undo_return_restores_return_date(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        returned = impound_service.mark_as_returned(db, vehicle.id, actor)
        returned_at = returned.data_devolucao
        impound_service.undo_return(db, vehicle.id, actor)

        revert_audit_entry(db, last_entry(db, AuditAction.UNDO_RETURN).id, actor)

        restored = db.get(Vehicle, vehicle.id)
        db.refresh(restored)
        assert restored.devolvido == YesNo.YES
        assert restored.data_devolucao == returned_at

    def test_restore_conflicts_when_plate_taken_since(self, db, actor, make_vehicle):
        vehicle = make_vehicle(placa_original="ABC1234")
        impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(placa_original="XYZ9876"), actor)
        edit = last_entry(db, AuditAction.EDIT_VEHICLE)
        newcomer = make_vehicle(placa_original="ABC1234", marca="Fiat")

        with pytest.raises(ConflictError):
            revert_audit_entry(db, edit.id, actor)
        db.refresh(edit)
        assert edit.reverted == YesNo.NO
        assert edit.reverted_at is None
        assert db.get(Vehicle, vehicle.id).placa_original == "XYZ9876"
        assert db.get(Vehicle, newcomer.id).placa_original == "ABC1234"

    def test_restore_of_deleted_vehicle_not_found(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(cor="Preto"), actor)
        edit = last_entry(db, AuditAction.EDIT_VEHICLE)
        impound_service.delete_vehicle(db, vehicle.id, actor)

        with pytest.raises(NotFoundError):
            revert_audit_entry(db, edit.id, actor)
        db.refresh(edit)
        assert edit.reverted == YesNo.NO

    def test_restore_from_legacy_snapshot(self, db, actor, make_vehicle):
        vehicle = make_vehicle(cor="Prata")
        entry = audit_service.record(
            db, actor, AuditAction.MARK_RETURNED, EntityType.VEHICLE, vehicle.id, "Legacy return",
            previous_data={"id": vehicle.id, "placaOriginal": "ABC1234", "cor": "Vinho",
                           "statusPericia": "desconhecido", "devolvido": "sim", "dataDevolucao": "??"},
        )

        revert_audit_entry(db, entry.id, actor)

        restored = db.get(Vehicle, vehicle.id)
        db.refresh(restored)
        assert restored.cor == "Vinho"
        assert restored.marca is None
        assert restored.status_pericia == InspectionStatus.PENDING
        assert restored.devolvido == YesNo.YES
        assert restored.data_devolucao is not None


class TestRevertDelete:
    def test_revert_delete_recreates_with_new_identity(self, db, actor, other_actor, make_vehicle):
        vehicle = make_vehicle(observacoes="Chave no cofre")
        old_id = vehicle.id
        impound_service.delete_vehicle(db, old_id, other_actor)
        delete_entry = last_entry(db, AuditAction.DELETE_VEHICLE)

        result = revert_audit_entry(db, delete_entry.id, other_actor)

        assert result.vehicle_id != old_id
        recreated = db.get(Vehicle, result.vehicle_id)
        assert recreated.placa_original == "ABC1234"
        assert recreated.observacoes == "Chave no cofre"
        assert recreated.created_by == actor.user_id
        assert db.get(Vehicle, old_id) is None

        revert_entry = last_entry(db)
        assert revert_entry.entity_id == result.vehicle_id
        assert revert_entry.previous_data is None
        assert revert_entry.new_data["id"] == result.vehicle_id

    def test_revert_delete_conflicts_when_plate_reused(self, db, actor, make_vehicle):
        vehicle = make_vehicle(placa_original="ABC1234")
        impound_service.delete_vehicle(db, vehicle.id, actor)
        delete_entry = last_entry(db, AuditAction.DELETE_VEHICLE)
        make_vehicle(placa_original="ABC1234")

        with pytest.raises(ConflictError):
            revert_audit_entry(db, delete_entry.id, actor)
        db.refresh(delete_entry)
        assert delete_entry.reverted == YesNo.NO
        assert db.query(Vehicle).count() == 1

    def test_revert_delete_keeps_return_invariant(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        impound_service.mark_as_returned(db, vehicle.id, actor)
        impound_service.delete_vehicle(db, vehicle.id, actor)

        result = revert_audit_entry(db, last_entry(db, AuditAction.DELETE_VEHICLE).id, actor)

        recreated = db.get(Vehicle, result.vehicle_id)
        assert recreated.devolvido == YesNo.YES
        assert recreated.status_pericia == InspectionStatus.DONE
        assert isinstance(recreated.data_devolucao, datetime)
