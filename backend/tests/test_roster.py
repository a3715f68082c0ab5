from models import Shift, ShiftType, UserRole
from results import ErrorKind


def _shift(**overrides) -> Shift:
    fields = {"user_id": "U-003", "date": "2030-01-10", "start_time": "19:00", "end_time": "07:00",
              "type": ShiftType.NIGHT, "location": "W-ICU"}
    fields.update(overrides)
    return Shift(**fields)


def test_add_shift_copies_staff_details(store, admin_ops):
    result = admin_ops.add_shift(_shift())
    assert result.ok
    shift = result.value
    assert shift.id.startswith("S-")
    assert shift.user_name == "Nurse Joy"
    assert shift.user_role == UserRole.NURSE
    assert store.read().audit_logs[0].action == "ADD_SHIFT"
    assert store.read().audit_logs[0].module == "ROSTER"


def test_only_clinical_staff_are_rostered(admin_ops):
    assert admin_ops.add_shift(_shift(user_id="U-004")).kind == ErrorKind.INVALID_INPUT
    assert admin_ops.add_shift(_shift(user_id="U-404")).kind == ErrorKind.NOT_FOUND
    assert admin_ops.add_shift(_shift(start_time="08:00", end_time="08:00")).kind == ErrorKind.INVALID_INPUT


def test_roster_permissions(ops_for):
    assert ops_for("doctor").add_shift(_shift()).kind == ErrorKind.UNAUTHORIZED
    assert ops_for("doctor").list_shifts().ok
    assert ops_for("receptionist").list_shifts().kind == ErrorKind.UNAUTHORIZED


def test_list_and_delete_shifts(store, admin_ops):
    night = admin_ops.add_shift(_shift()).value
    admin_ops.add_shift(_shift(user_id="U-002", date="2030-01-11", start_time="08:00", end_time="16:00",
                               type=ShiftType.DAY))

    assert [s.id for s in admin_ops.list_shifts("2030-01-10").value] == [night.id]
    assert len(admin_ops.list_shifts().value) == 2

    assert admin_ops.delete_shift(night.id).ok
    assert [s.user_id for s in store.read().shifts] == ["U-002"]
    assert admin_ops.delete_shift(night.id).kind == ErrorKind.NOT_FOUND
