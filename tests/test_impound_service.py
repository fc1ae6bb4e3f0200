"""Integration tests for the caller-facing vehicle operations (SQLite session)."""

import pytest
from app.exceptions import ConflictError, InputValidationError
from app.models.audit_log import AuditLog
from app.models.enums import AuditAction, EntityType, InspectionStatus, YesNo
from app.schemas.vehicle import VehicleCreate, VehicleUpdate
from app.services import impound_service


def audit_entries(db, action=None):
    q = db.query(AuditLog)
    if action is not None:
        q = q.filter(AuditLog.action == action)
    return q.order_by(AuditLog.id).all()


class TestCreateVehicle:
    def test_create_records_entry_with_new_snapshot_only(self, db, actor, make_vehicle):
        vehicle = make_vehicle()

        assert vehicle.id is not None
        assert vehicle.created_by == actor.user_id
        assert vehicle.status_pericia == InspectionStatus.PENDING
        assert vehicle.devolvido == YesNo.NO
        assert vehicle.data_devolucao is None

        [entry] = audit_entries(db)
        assert entry.action == AuditAction.CREATE_VEHICLE
        assert entry.entity_type == EntityType.VEHICLE
        assert entry.entity_id == vehicle.id
        assert entry.description == "Registered vehicle ABC1234 (Volkswagen Gol)"
        assert entry.previous_data is None
        assert entry.new_data["placa_original"] == "ABC1234"

    def test_duplicate_original_plate_conflicts(self, db, make_vehicle):
        make_vehicle(placa_original="ABC1234")
        with pytest.raises(ConflictError):
            make_vehicle(placa_original="abc-1234")
        assert len(audit_entries(db)) == 1

    def test_same_displayed_plate_allowed(self, make_vehicle):
        make_vehicle(placa_original="ABC1234", placa_ostentada="CLN0N00")
        clone = make_vehicle(placa_original="DEF5678", placa_ostentada="CLN0N00")
        assert clone.placa_ostentada == "CLN0N00"

    def test_vehicles_without_plate_do_not_conflict(self, make_vehicle):
        make_vehicle(placa_original=None)
        assert make_vehicle(placa_original=None).id is not None

    def test_invalid_procedure_writes_nothing(self, db, actor):
        with pytest.raises(InputValidationError):
            impound_service.create_vehicle(db, VehicleCreate(numero_procedimento="1-1/24"), actor)
        assert audit_entries(db) == []

    def test_created_already_returned_applies_coupling(self, make_vehicle):
        vehicle = make_vehicle(devolvido="sim", status_pericia="sem_pericia")
        assert vehicle.devolvido == YesNo.YES
        assert vehicle.status_pericia == InspectionStatus.DONE
        assert vehicle.data_devolucao is not None

    def test_plain_dict_payload(self, db, actor):
        vehicle = impound_service.create_vehicle(db, {"placa_original": "QWE1R23", "id": 999}, actor)
        assert vehicle.placa_original == "QWE1R23"
        assert vehicle.id != 999


class TestUpdateVehicle:
    def test_update_records_before_and_after(self, db, actor, make_vehicle):
        vehicle = make_vehicle(cor="Prata")
        updated = impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(cor="Preto"), actor)

        assert updated.cor == "Preto"
        assert updated.marca == "Volkswagen"
        [entry] = audit_entries(db, AuditAction.EDIT_VEHICLE)
        assert entry.previous_data["cor"] == "Prata"
        assert entry.new_data["cor"] == "Preto"

    def test_reusing_own_plate_succeeds(self, db, actor, make_vehicle):
        vehicle = make_vehicle(placa_original="ABC1234")
        updated = impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(placa_original="ABC1234"), actor)
        assert updated.placa_original == "ABC1234"

    def test_taking_another_vehicles_plate_conflicts(self, db, actor, make_vehicle):
        make_vehicle(placa_original="ABC1234")
        other = make_vehicle(placa_original="DEF5678")
        with pytest.raises(ConflictError):
            impound_service.update_vehicle(db, other.id, VehicleUpdate(placa_original="ABC1234"), actor)

    def test_invalid_process_number_aborts_whole_update(self, db, actor, make_vehicle):
        vehicle = make_vehicle(cor="Prata")
        with pytest.raises(InputValidationError):
            impound_service.update_vehicle(
                db, vehicle.id, VehicleUpdate(cor="Preto", numero_processo="123"), actor)
        db.refresh(vehicle)
        assert vehicle.cor == "Prata"
        assert audit_entries(db, AuditAction.EDIT_VEHICLE) == []

    def test_missing_vehicle_returns_none(self, db, actor):
        assert impound_service.update_vehicle(db, 404, VehicleUpdate(cor="Azul"), actor) is None
        assert audit_entries(db) == []

    def test_unreturning_through_edit_clears_date(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        impound_service.mark_as_returned(db, vehicle.id, actor)
        updated = impound_service.update_vehicle(db, vehicle.id, VehicleUpdate(devolvido="nao"), actor)
        assert updated.devolvido == YesNo.NO
        assert updated.data_devolucao is None
        assert updated.status_pericia == InspectionStatus.DONE


class TestDeleteVehicle:
    def test_delete_records_previous_snapshot_only(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        vehicle_id = vehicle.id
        assert impound_service.delete_vehicle(db, vehicle_id, actor) is True

        [entry] = audit_entries(db, AuditAction.DELETE_VEHICLE)
        assert entry.entity_id == vehicle_id
        assert entry.previous_data["id"] == vehicle_id
        assert entry.new_data is None
        assert entry.description == "Deleted vehicle ABC1234 (Volkswagen Gol)"

    def test_missing_vehicle_returns_false(self, db, actor):
        assert impound_service.delete_vehicle(db, 404, actor) is False
        assert audit_entries(db) == []


class TestStatusTransitions:
    def test_return_then_undo_scenario(self, db, actor, make_vehicle):
        vehicle = make_vehicle(placa_original="TEST1234", status_pericia="pendente", devolvido="nao")
        assert vehicle.data_devolucao is None

        returned = impound_service.mark_as_returned(db, vehicle.id, actor)
        assert returned.devolvido == YesNo.YES
        assert returned.status_pericia == InspectionStatus.DONE
        assert returned.data_devolucao is not None

        undone = impound_service.undo_return(db, vehicle.id, actor)
        assert undone.devolvido == YesNo.NO
        assert undone.data_devolucao is None
        assert undone.status_pericia == InspectionStatus.DONE

        actions = [entry.action for entry in audit_entries(db)]
        assert actions == [AuditAction.CREATE_VEHICLE, AuditAction.MARK_RETURNED, AuditAction.UNDO_RETURN]

    def test_return_snapshot_captures_prior_inspection(self, db, actor, make_vehicle):
        vehicle = make_vehicle(status_pericia="sem_pericia")
        impound_service.mark_as_returned(db, vehicle.id, actor)
        [entry] = audit_entries(db, AuditAction.MARK_RETURNED)
        assert entry.previous_data["status_pericia"] == "sem_pericia"
        assert entry.new_data["status_pericia"] == "feita"

    def test_inspection_done_logged_as_mark(self, db, actor, make_vehicle):
        vehicle = make_vehicle()
        updated = impound_service.update_inspection_status(db, vehicle.id, InspectionStatus.DONE, actor)
        assert updated.status_pericia == InspectionStatus.DONE
        assert audit_entries(db)[-1].action == AuditAction.MARK_INSPECTION

    def test_inspection_back_to_pending_logged_as_revert(self, db, actor, make_vehicle):
        vehicle = make_vehicle(status_pericia="feita")
        impound_service.update_inspection_status(db, vehicle.id, InspectionStatus.PENDING, actor)
        entry = audit_entries(db)[-1]
        assert entry.action == AuditAction.REVERT_INSPECTION
        assert entry.description.endswith("pendente")

    def test_transitions_on_missing_vehicle_return_none(self, db, actor):
        assert impound_service.mark_as_returned(db, 404, actor) is None
        assert impound_service.undo_return(db, 404, actor) is None
        assert impound_service.update_inspection_status(db, 404, InspectionStatus.DONE, actor) is None
        assert audit_entries(db) == []
