"""Clinical decision support backed by a text-completion model."""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional

import config
from models import Patient

logger = logging.getLogger("nexus.clinical_ai")

MISSING_KEY_MESSAGE = "Error: API Key is missing."
FAILURE_MESSAGE = "Unable to process request at this time. Please check system logs."
EMPTY_MESSAGE = "No analysis generated."

SYSTEM_INSTRUCTION = "You are a helpful, professional medical AI assistant."

# (system, prompt) -> completion text
Completion = Callable[[str, str], Optional[str]]


def build_patient_prompt(patient: Patient, query: str) -> str:
    recent_vitals = [v.model_dump(mode="json") for v in patient.vitals_history[:3]]
    labs = [lab.model_dump(mode="json") for lab in patient.lab_results]
    return "\n".join([
        'You are an expert Clinical Decision Support AI named "Nexus AI".',
        "You are assisting a doctor in a hospital setting.",
        "",
        "Patient Context:",
        f"ID: {patient.id}",
        f"Name: {patient.first_name} {patient.last_name}",
        f"Age/DOB: {patient.dob}",
        f"Gender: {patient.gender}",
        f"Status: {patient.status.value}",
        f"Known Diagnosis: {', '.join(patient.diagnosis)}",
        f"Allergies: {', '.join(patient.allergies)}",
        f"Recent Vitals: {json.dumps(recent_vitals)}",
        f"Recent Lab Results: {json.dumps(labs)}",
        "",
        f'User Query: "{query}"',
        "",
        "Instructions:",
        "1. Provide a concise, clinical analysis based on the provided data.",
        "2. If values are abnormal (e.g. high BP, low SpO2), flag them.",
        "3. Suggest potential differentials or next steps if asked.",
        "4. Always maintain a professional, medical tone.",
        "5. Add a disclaimer that you are an AI assistant and this is not a final diagnosis.",
    ])


def openai_completion(api_key: str, model: str = config.AI_MODEL) -> Completion:
    from openai import OpenAI

    client = OpenAI(api_key=api_key)

    def _complete(system: str, prompt: str) -> Optional[str]:
        response = client.chat.completions.create(
            model=model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content

    return _complete


class ClinicalAssistant:
    def __init__(self, complete: Optional[Completion] = None, api_key: Optional[str] = None):
        self.api_key = config.openai_api_key() if api_key is None else api_key
        self._complete = complete

    def _completion(self) -> Optional[Completion]:
        if self._complete is None and self.api_key:
            self._complete = openai_completion(self.api_key)
        return self._complete

    def analyze_patient(self, patient: Patient, query: str) -> str:
        """Single attempt. Always returns display text, never raises."""
        if not self.api_key:
            return MISSING_KEY_MESSAGE
        try:
            text = self._completion()(SYSTEM_INSTRUCTION, build_patient_prompt(patient, query))
        except Exception:
            logger.exception("Clinical AI request failed for patient %s", patient.id)
            return FAILURE_MESSAGE
        return text or EMPTY_MESSAGE
