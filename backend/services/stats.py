from datetime import date

from models import AppointmentStatus, BedStatus, ClinicalFlag, PatientStatus, PrescriptionStatus, Snapshot


def compute_stats(snapshot: Snapshot) -> dict:
    patients = snapshot.patients
    beds = snapshot.beds
    today = date.today().isoformat()

    occupied = sum(1 for bed in beds if bed.status == BedStatus.OCCUPIED)
    occupancy_rate = round(occupied / len(beds) * 100) if beds else 0

    return {
        "total_patients": len(patients),
        "admitted": sum(1 for p in patients if p.status == PatientStatus.ADMITTED),
        "emergency": sum(1 for p in patients if p.status == PatientStatus.EMERGENCY),
        # Latest vitals entry is first.
        "critical": sum(
            1 for p in patients
            if p.vitals_history and p.vitals_history[0].flag == ClinicalFlag.CRITICAL
        ),
        "occupancy_rate": occupancy_rate,
        "beds_by_status": {
            status.value: sum(1 for bed in beds if bed.status == status) for status in BedStatus
        },
        "low_stock_medications": [
            med.id for med in snapshot.medications if med.stock <= med.reorder_level
        ],
        "pending_prescriptions": sum(
            1 for rx in snapshot.prescriptions if rx.status == PrescriptionStatus.PENDING
        ),
        "appointments_today": sum(
            1 for appt in snapshot.appointments
            if appt.date == today and appt.status != AppointmentStatus.CANCELLED
        ),
    }
