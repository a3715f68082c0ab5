from __future__ import annotations

from enum import Enum

from models import UserRole


class Capability(str, Enum):
    VIEW_PATIENTS = "VIEW_PATIENTS"
    REGISTER_PATIENT = "REGISTER_PATIENT"
    EDIT_PATIENT_DEMOGRAPHICS = "EDIT_PATIENT_DEMOGRAPHICS"
    REIDENTIFY_PATIENT = "REIDENTIFY_PATIENT"
    RECORD_VITALS = "RECORD_VITALS"
    ADD_PROGRESS_NOTE = "ADD_PROGRESS_NOTE"
    EDIT_TREATMENT_PLAN = "EDIT_TREATMENT_PLAN"
    ORDER_LABS = "ORDER_LABS"
    VIEW_BEDS = "VIEW_BEDS"
    MANAGE_BEDS = "MANAGE_BEDS"
    MANAGE_FACILITIES = "MANAGE_FACILITIES"
    VIEW_APPOINTMENTS = "VIEW_APPOINTMENTS"
    MANAGE_APPOINTMENTS = "MANAGE_APPOINTMENTS"
    VIEW_PHARMACY = "VIEW_PHARMACY"
    PRESCRIBE_MEDICATION = "PRESCRIBE_MEDICATION"
    DISPENSE_MEDICATION = "DISPENSE_MEDICATION"
    MANAGE_INVENTORY = "MANAGE_INVENTORY"
    USE_CLINICAL_AI = "USE_CLINICAL_AI"
    VIEW_ROSTER = "VIEW_ROSTER"
    MANAGE_ROSTER = "MANAGE_ROSTER"
    MANAGE_USERS = "MANAGE_USERS"
    VIEW_AUDIT_LOG = "VIEW_AUDIT_LOG"


class View(str, Enum):
    DASHBOARD = "DASHBOARD"
    PATIENTS = "PATIENTS"
    BEDS = "BEDS"
    APPOINTMENTS = "APPOINTMENTS"
    PHARMACY = "PHARMACY"
    CLINICAL_AI = "CLINICAL_AI"
    ROSTER = "ROSTER"
    SETTINGS = "SETTINGS"
    SYSTEM_ADMIN = "SYSTEM_ADMIN"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.ADMIN: frozenset(Capability),
    UserRole.DOCTOR: frozenset({
        Capability.VIEW_PATIENTS,
        Capability.REGISTER_PATIENT,
        Capability.EDIT_PATIENT_DEMOGRAPHICS,
        Capability.RECORD_VITALS,
        Capability.ADD_PROGRESS_NOTE,
        Capability.EDIT_TREATMENT_PLAN,
        Capability.ORDER_LABS,
        Capability.VIEW_BEDS,
        Capability.MANAGE_BEDS,
        Capability.VIEW_APPOINTMENTS,
        Capability.MANAGE_APPOINTMENTS,
        Capability.VIEW_PHARMACY,
        Capability.PRESCRIBE_MEDICATION,
        Capability.USE_CLINICAL_AI,
        Capability.VIEW_ROSTER,
    }),
    UserRole.NURSE: frozenset({
        Capability.VIEW_PATIENTS,
        Capability.RECORD_VITALS,
        Capability.ADD_PROGRESS_NOTE,
        Capability.VIEW_BEDS,
        Capability.MANAGE_BEDS,
        Capability.VIEW_PHARMACY,
        Capability.DISPENSE_MEDICATION,
        Capability.VIEW_ROSTER,
    }),
    UserRole.RECEPTIONIST: frozenset({
        Capability.VIEW_PATIENTS,
        Capability.REGISTER_PATIENT,
        Capability.EDIT_PATIENT_DEMOGRAPHICS,
        Capability.VIEW_BEDS,
        Capability.VIEW_APPOINTMENTS,
        Capability.MANAGE_APPOINTMENTS,
    }),
    UserRole.MEDICAL_RECORDS: frozenset({
        Capability.VIEW_PATIENTS,
        Capability.EDIT_PATIENT_DEMOGRAPHICS,
        Capability.REIDENTIFY_PATIENT,
        Capability.VIEW_AUDIT_LOG,
    }),
}

# Views missing from this map are public. DASHBOARD and SETTINGS rely on that.
VIEW_CAPABILITIES: dict[View, frozenset[Capability]] = {
    View.PATIENTS: frozenset({Capability.VIEW_PATIENTS}),
    View.BEDS: frozenset({Capability.VIEW_BEDS, Capability.MANAGE_BEDS}),
    View.APPOINTMENTS: frozenset({Capability.VIEW_APPOINTMENTS, Capability.MANAGE_APPOINTMENTS}),
    View.PHARMACY: frozenset({
        Capability.VIEW_PHARMACY,
        Capability.PRESCRIBE_MEDICATION,
        Capability.DISPENSE_MEDICATION,
        Capability.MANAGE_INVENTORY,
    }),
    View.CLINICAL_AI: frozenset({Capability.USE_CLINICAL_AI}),
    View.ROSTER: frozenset({Capability.VIEW_ROSTER, Capability.MANAGE_ROSTER}),
    View.SYSTEM_ADMIN: frozenset({Capability.MANAGE_USERS, Capability.VIEW_AUDIT_LOG}),
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        return None


def capabilities_for(role: UserRole | str) -> frozenset[Capability]:
    role_value = _coerce(UserRole, role)
    if role_value is None:
        return frozenset()
    return ROLE_CAPABILITIES.get(role_value, frozenset())


def allowed(role: UserRole | str, capability: Capability | str) -> bool:
    capability_value = _coerce(Capability, capability)
    if capability_value is None:
        return False
    return capability_value in capabilities_for(role)


def view_allowed(role: UserRole | str, view: View | str) -> bool:
    view_value = _coerce(View, view)
    if view_value is None or _coerce(UserRole, role) is None:
        return False
    required = VIEW_CAPABILITIES.get(view_value)
    if required is None:
        return True
    granted = capabilities_for(role)
    return any(capability in granted for capability in required)


def has_access(role: UserRole | str, view: View | str) -> bool:
    """Role-to-view check the UI consults before rendering privileged controls."""
    return view_allowed(role, view)


def views_for(role: UserRole | str) -> list[View]:
    return [view for view in View if view_allowed(role, view)]
