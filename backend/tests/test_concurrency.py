import threading
from concurrent.futures import ThreadPoolExecutor

from models import BedStatus


def _run_together(calls):
    barrier = threading.Barrier(len(calls))

    def _wrapped(call):
        barrier.wait()
        return call()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_wrapped, calls))


def _assert_occupancy_consistent(snapshot):
    patients = {patient.id: patient for patient in snapshot.patients}
    beds = {bed.id: bed for bed in snapshot.beds}
    for bed in snapshot.beds:
        assert (bed.status == BedStatus.OCCUPIED) == (bed.patient_id is not None), bed
        if bed.patient_id:
            assert patients[bed.patient_id].bed_id == bed.id
    for patient in snapshot.patients:
        if patient.bed_id:
            assert beds[patient.bed_id].patient_id == patient.id


def test_concurrent_dispenses_deduct_stock_once(store, ops_for):
    nurses = [ops_for("nurse") for _ in range(16)]
    results = _run_together([lambda ops=ops: ops.dispense_prescription("RX-501") for ops in nurses])

    assert sum(1 for result in results if result.ok) == 1
    medication = next(med for med in store.read().medications if med.id == "M-103")
    assert medication.stock == 770
    assert sum(1 for entry in store.read().audit_logs if entry.action == "DISPENSE") == 1


def test_concurrent_bed_changes_keep_occupancy_consistent(store, ops_for):
    calls = []
    for _ in range(4):
        calls.append(lambda ops=ops_for("nurse"): ops.assign_patient_to_bed("P-1003", "B-ICU-1"))
        calls.append(lambda ops=ops_for("nurse"): ops.assign_patient_to_bed("P-1001", "B-ICU-1"))
        calls.append(lambda ops=ops_for("nurse"): ops.discharge_patient_from_bed("B-304-A"))
        calls.append(lambda ops=ops_for("nurse"): ops.vacate_bed("B-ER-1"))

    results = _run_together(calls)

    icu_assignments = [result for index, result in enumerate(results) if index % 4 in (0, 1) and result.ok]
    assert len(icu_assignments) == 1
    snapshot = store.read()
    icu = next(bed for bed in snapshot.beds if bed.id == "B-ICU-1")
    assert icu.patient_id == icu_assignments[0].value["patient"].id
    assert next(bed for bed in snapshot.beds if bed.id == "B-ER-1").status == BedStatus.CLEANING
    _assert_occupancy_consistent(snapshot)
