from models import Medication, NotificationType, Prescription, PrescriptionStatus
from results import ErrorKind


def _med(snapshot, med_id):
    return next(med for med in snapshot.medications if med.id == med_id)


def _rx(snapshot, rx_id):
    return next(rx for rx in snapshot.prescriptions if rx.id == rx_id)


def test_dispense_deducts_stock_exactly_once(store, ops_for):
    nurse = ops_for("nurse")

    first = nurse.dispense_prescription("RX-501")
    assert first.ok
    snapshot = store.read()
    assert _med(snapshot, "M-103").stock == 770
    assert _rx(snapshot, "RX-501").status == PrescriptionStatus.DISPENSED
    assert _rx(snapshot, "RX-501").dispensed_at
    assert snapshot.audit_logs[0].action == "DISPENSE"
    assert snapshot.audit_logs[0].module == "PHARMACY"

    second = nurse.dispense_prescription("RX-501")
    assert not second.ok
    assert second.kind == ErrorKind.INVALID_STATE
    assert second.message == "Already dispensed"
    assert _med(store.read(), "M-103").stock == 770


def test_dispense_with_insufficient_stock_changes_nothing(store, ops_for):
    created = ops_for("doctor").add_prescription(
        Prescription(patient_id="P-1003", doctor_id="D-001", medication_id="M-104",
                     date="", dosage="2 puffs", quantity=100)
    )
    assert created.ok
    before = store.read()

    result = ops_for("nurse").dispense_prescription(created.value.id)

    assert result.kind == ErrorKind.INSUFFICIENT_RESOURCE
    assert result.message == "Insufficient stock. Required: 100, Available: 50"
    assert store.read() == before


def test_dispense_unknown_prescription(ops_for):
    result = ops_for("nurse").dispense_prescription("RX-000")
    assert result.kind == ErrorKind.NOT_FOUND
    assert result.message == "Prescription not found"


def test_dispense_below_reorder_level_queues_warning(store, ops_for):
    created = ops_for("doctor").add_prescription(
        Prescription(patient_id="P-1001", doctor_id="D-002", medication_id="M-103",
                     date="2024-01-02", dosage="20mg daily", quantity=650)
    )
    assert ops_for("nurse").dispense_prescription(created.value.id).ok

    snapshot = store.read()
    assert _med(snapshot, "M-103").stock == 150
    warning = snapshot.notifications[0]
    assert warning.type == NotificationType.WARNING
    assert "Lipitor" in warning.message
    assert not warning.read


def test_doctor_cannot_dispense_and_nurse_cannot_prescribe(store, ops_for):
    before = store.read()
    assert ops_for("doctor").dispense_prescription("RX-501").kind == ErrorKind.UNAUTHORIZED
    denied = ops_for("nurse").add_prescription(
        Prescription(patient_id="P-1001", doctor_id="D-001", medication_id="M-101",
                     date="", dosage="1g", quantity=2)
    )
    assert denied.kind == ErrorKind.UNAUTHORIZED
    assert store.read() == before


def test_prescription_validation(ops_for):
    doctor = ops_for("doctor")
    missing_med = doctor.add_prescription(
        Prescription(patient_id="P-1001", doctor_id="D-001", medication_id="M-999",
                     date="", dosage="1g", quantity=2)
    )
    assert missing_med.kind == ErrorKind.NOT_FOUND

    zero = doctor.add_prescription(
        Prescription(patient_id="P-1001", doctor_id="D-001", medication_id="M-101",
                     date="", dosage="1g", quantity=0)
    )
    assert zero.kind == ErrorKind.INVALID_INPUT


def test_cancelled_prescription_cannot_be_dispensed(store, ops_for):
    cancelled = ops_for("doctor").cancel_prescription("RX-503")
    assert cancelled.ok
    assert cancelled.value.status == PrescriptionStatus.CANCELLED

    result = ops_for("nurse").dispense_prescription("RX-503")
    assert result.kind == ErrorKind.INVALID_STATE
    assert ops_for("doctor").cancel_prescription("RX-503").kind == ErrorKind.INVALID_STATE
    assert _med(store.read(), "M-101").stock == 5000


def test_inventory_add_and_restock(store, admin_ops):
    added = admin_ops.add_medication(Medication(name="Omeprazole", strength="20mg", stock=40, reorder_level=10))
    assert added.ok
    assert added.value.id.startswith("M-")
    assert store.read().medications[0].name == "Omeprazole"

    restocked = admin_ops.restock_medication("M-104", 150)
    assert restocked.value.stock == 200
    assert store.read().audit_logs[0].action == "RESTOCK"

    assert admin_ops.restock_medication("M-104", 0).kind == ErrorKind.INVALID_INPUT
    negative = admin_ops.add_medication(Medication(name="Bad", stock=-1))
    assert negative.kind == ErrorKind.INVALID_INPUT


def test_nurse_cannot_restock(ops_for):
    assert ops_for("nurse").restock_medication("M-104", 10).kind == ErrorKind.UNAUTHORIZED


def test_prescription_filters(ops_for):
    pending = ops_for("nurse").list_prescriptions(PrescriptionStatus.PENDING).value
    assert {rx.id for rx in pending} == {"RX-501", "RX-503"}


def test_low_stock_warnings_drop_read_notifications_past_limit(store, ops_for, monkeypatch):
    monkeypatch.setattr("config.NOTIFICATION_LIMIT", 2)
    assert ops_for("nurse").mark_notification_read("n2").ok
    created = ops_for("doctor").add_prescription(
        Prescription(patient_id="P-1001", doctor_id="D-002", medication_id="M-103",
                     date="2024-01-02", dosage="20mg daily", quantity=650)
    )
    assert ops_for("nurse").dispense_prescription(created.value.id).ok

    notifications = store.read().notifications
    assert len(notifications) == 2
    assert notifications[0].type == NotificationType.WARNING
    assert notifications[1].id == "n1"
