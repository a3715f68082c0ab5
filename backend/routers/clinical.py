from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from models import User
from routers.deps import get_operations, unwrap
from services.access import Capability
from services.auth import require_capability
from services.clinical_ai import ClinicalAssistant
from services.operations import OperationsEngine

router = APIRouter(prefix="/clinical-ai", tags=["clinical-ai"])


class AnalysisRequest(BaseModel):
    query: str = Field(min_length=1, max_length=4000)


def get_assistant(request: Request) -> ClinicalAssistant:
    return request.app.state.assistant


@router.post("/patients/{patient_id}/analyze")
def analyze_patient(
    patient_id: str,
    body: AnalysisRequest,
    _current_user: User = Depends(require_capability(Capability.USE_CLINICAL_AI)),
    ops: OperationsEngine = Depends(get_operations),
    assistant: ClinicalAssistant = Depends(get_assistant),
):
    patient = unwrap(ops.get_patient(patient_id))
    return {"patient_id": patient.id, "response": assistant.analyze_patient(patient, body.query.strip())}
