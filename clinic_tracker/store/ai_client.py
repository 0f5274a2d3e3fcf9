"""
AI summarization client.

Sends a patient's recent observations to the summarization endpoint and
returns the free-text clinical summary it produces.
"""

import logging
from typing import Optional

import requests

from ..config import DEFAULT_TIMEOUT
from ..core.errors import SummaryError

SUMMARY_PROMPT = """Tu es un assistant medical. Resume en 3-5 points cles les observations suivantes pour cet enfant.
Focus sur: diagnostics, traitements en cours, points de vigilance, evolution.
Sois concis et utilise un langage medical professionnel.

Patient: {patient_name}
{birth_line}{notes_line}
Observations:
{observations}

Resume (en francais):"""


class SummaryClient:
    """Client for the note-summarization endpoint."""

    def __init__(self, url: str, access_token: str = "", timeout: int = DEFAULT_TIMEOUT,
                 verify_ssl: bool = True):
        self.url = url
        self.access_token = access_token
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.logger = logging.getLogger(__name__)

    def summarize(self, prompt: str, patient_id: Optional[str] = None) -> str:
        """
        Request a summary for the given prompt text.

        Args:
            prompt: Patient header and formatted observations
            patient_id: Patient the summary is for (sent for auditing)

        Returns:
            Summary text, unparsed

        Raises:
            SummaryError: if the endpoint fails or returns no summary
        """
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = requests.post(
                self.url,
                headers=headers,
                json={"patientId": patient_id, "prompt": prompt},
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.RequestException as e:
            raise SummaryError(f"Summary request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            message = body.get('error') if isinstance(body, dict) else None
            raise SummaryError(message or f"Summary request failed (Status: {response.status_code})")

        summary = body.get('summary') if isinstance(body, dict) else None
        if not isinstance(summary, str):
            raise SummaryError("Summary response did not contain a summary")

        self.logger.info(f"SUMMARY_GENERATED - {len(summary)} characters")
        return summary


def format_observations_text(observations) -> str:
    """One "[date] type: contenu" line per observation."""
    return "\n".join(
        f"[{obs.date}] {obs.type_observation}: {obs.contenu or 'Pas de contenu'}"
        for obs in observations
    )


def build_summary_prompt(patient, observations) -> str:
    return SUMMARY_PROMPT.format(
        patient_name=f"{patient.nom} {patient.prenom}",
        birth_line=f"Date de naissance: {patient.date_naissance}\n" if patient.date_naissance else "",
        notes_line=f"Notes: {patient.notes}\n" if patient.notes else "",
        observations=format_observations_text(observations),
    )
