"""
Remote store client.

Talks to the hosted PostgREST-style API that owns the patients,
observations, consultations, todos and work_sessions tables. The client
always fetches full filtered sets; secondary filtering, sorting and
grouping happen in memory.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from ..config import DEFAULT_TIMEOUT
from ..core.data_models import Patient, Observation, Consultation, Todo, WorkSession
from ..core.errors import StoreError

PATIENT_EMBED = "patient:patients(id,nom,prenom,date_naissance,secteur)"
TODO_EMBED = "patient:patients(id,nom,prenom),observation:observations(id,date,type_observation)"


class RestStoreClient:
    """Query and mutation surface of the remote store."""

    def __init__(self,
                 base_url: str,
                 api_key: str = "",
                 access_token: str = "",
                 timeout: int = DEFAULT_TIMEOUT,
                 verify_ssl: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize the store client.

        Args:
            base_url: Root URL of the store (the REST API lives under /rest/v1)
            api_key: Project API key sent as the `apikey` header
            access_token: User access token (falls back to the API key)
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
            session: Optional pre-configured requests session
        """
        self.api_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

        if not verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)

        self.session.headers.update({
            "Content-Type": "application/json",
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        })

    # -- transport ---------------------------------------------------------

    def _request(self,
                 method: str,
                 table: str,
                 params: Optional[Dict[str, str]] = None,
                 payload: Any = None,
                 single: bool = False) -> Any:
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = "application/vnd.pgrst.object+json"

        url = f"{self.api_url}/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.RequestException as e:
            self.logger.error(f"STORE_UNREACHABLE - {method} {table}: {e}")
            raise StoreError(f"Store request failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {'message': response.text or response.reason}
            if not isinstance(body, dict):
                body = {'message': str(body)}
            error = StoreError.from_payload(body, status=response.status_code)
            self.logger.error(f"STORE_ERROR - {method} {table} ({response.status_code}): {error}")
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _select(self, table: str, select: str = "*", order: Optional[str] = None,
                limit: Optional[int] = None, **filters: Any) -> List[Dict[str, Any]]:
        params = {"select": select}
        if order:
            params["order"] = order
        if limit:
            params["limit"] = str(limit)
        for column, value in filters.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = str(value).lower()
            params[column] = f"eq.{value}"
        return self._request("GET", table, params=params) or []

    def _get(self, table: str, row_id: str, select: str = "*") -> Dict[str, Any]:
        return self._request("GET", table, params={"select": select, "id": f"eq.{row_id}"}, single=True)

    # -- generic mutations -------------------------------------------------

    def create(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", table, payload=row, single=True)

    def create_many(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._request("POST", table, payload=rows) or []

    def update(self, table: str, row_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", table, params={"id": f"eq.{row_id}"}, payload=updates, single=True)

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", table, params={"id": f"eq.{row_id}"})

    # -- typed queries -----------------------------------------------------

    def list_patients(self) -> List[Patient]:
        rows = self._select("patients", order="nom.asc,prenom.asc")
        return [Patient.from_dict(row) for row in rows]

    def get_patient(self, patient_id: str) -> Patient:
        return Patient.from_dict(self._get("patients", patient_id))

    def list_observations(self,
                          patient_id: Optional[str] = None,
                          consultation_id: Optional[str] = None,
                          date: Optional[str] = None,
                          limit: Optional[int] = None) -> List[Observation]:
        rows = self._select(
            "observations",
            select=f"*,{PATIENT_EMBED}",
            order="date.desc,created_at.desc",
            limit=limit,
            patient_id=patient_id,
            consultation_id=consultation_id,
            date=date,
        )
        return [Observation.from_dict(row) for row in rows]

    def list_consultations(self, date: Optional[str] = None) -> List[Consultation]:
        rows = self._select("consultations", order="date.desc,created_at.desc", date=date)
        return [Consultation.from_dict(row) for row in rows]

    def get_consultation(self, consultation_id: str) -> Consultation:
        return Consultation.from_dict(self._get("consultations", consultation_id))

    def list_todos(self, completed: Optional[bool] = None, patient_id: Optional[str] = None) -> List[Todo]:
        rows = self._select(
            "todos",
            select=f"*,{TODO_EMBED}",
            order="urgence.desc,date_echeance.asc.nullslast,created_at.desc",
            completed=completed,
            patient_id=patient_id,
        )
        return [Todo.from_dict(row) for row in rows]

    def list_work_sessions(self, completed: Optional[bool] = None) -> List[WorkSession]:
        rows = self._select(
            "work_sessions",
            order="date.desc.nullslast,created_at.desc",
            completed=completed,
        )
        return [WorkSession.from_dict(row) for row in rows]
