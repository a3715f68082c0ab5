import pytest

from models import UserRole
from services.access import Capability, View, allowed, capabilities_for, has_access, view_allowed, views_for


def test_admin_holds_every_capability():
    assert capabilities_for(UserRole.ADMIN) == frozenset(Capability)


@pytest.mark.parametrize(
    "role, capability, expected",
    [
        (UserRole.NURSE, Capability.DISPENSE_MEDICATION, True),
        (UserRole.NURSE, Capability.PRESCRIBE_MEDICATION, False),
        (UserRole.DOCTOR, Capability.PRESCRIBE_MEDICATION, True),
        (UserRole.DOCTOR, Capability.DISPENSE_MEDICATION, False),
        (UserRole.RECEPTIONIST, Capability.MANAGE_APPOINTMENTS, True),
        (UserRole.RECEPTIONIST, Capability.MANAGE_BEDS, False),
        (UserRole.MEDICAL_RECORDS, Capability.REIDENTIFY_PATIENT, True),
        (UserRole.DOCTOR, Capability.REIDENTIFY_PATIENT, False),
    ],
)
def test_role_capability_table(role, capability, expected):
    assert allowed(role, capability) is expected


def test_allowed_accepts_strings_and_rejects_unknowns():
    assert allowed("nurse", "record_vitals") is True
    assert allowed("JANITOR", Capability.VIEW_PATIENTS) is False
    assert allowed(UserRole.ADMIN, "LAUNCH_ROCKETS") is False


def test_view_access_uses_any_of_the_mapped_capabilities():
    # Nurses cannot prescribe but can dispense, which is enough for the pharmacy view.
    assert has_access(UserRole.NURSE, View.PHARMACY) is True
    assert has_access(UserRole.RECEPTIONIST, View.PHARMACY) is False
    assert has_access(UserRole.MEDICAL_RECORDS, View.SYSTEM_ADMIN) is True
    assert has_access(UserRole.NURSE, View.SYSTEM_ADMIN) is False


def test_unmapped_views_are_public_for_known_roles():
    for role in UserRole:
        assert view_allowed(role, View.DASHBOARD) is True
        assert view_allowed(role, "settings") is True


def test_unknown_role_or_view_is_denied():
    assert view_allowed("JANITOR", View.DASHBOARD) is False
    assert view_allowed(UserRole.ADMIN, "REACTOR_CONTROL") is False


def test_views_for_lists_visible_views_in_order():
    assert views_for(UserRole.ADMIN) == list(View)
    assert views_for(UserRole.RECEPTIONIST) == [
        View.DASHBOARD,
        View.PATIENTS,
        View.BEDS,
        View.APPOINTMENTS,
        View.SETTINGS,
    ]
