"""
Clinic Tracker Service

Service layer for the user workflows that combine store mutations with
workspace transitions: attendee imports, consultation lifecycle, patient
and observation creation, todos and work sessions, and AI summaries.

Navigation goes through open_tab/activate_tab/close_tab so that a
consultation view left without observations is reaped.

Store errors propagate to the caller untouched, and the workspace is only
changed after the store call succeeded.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .data_models import (
    ModuleType,
    TabType,
    Tab,
    Patient,
    Observation,
    Consultation,
    Todo,
    WorkSession,
    ImportReport,
    ImportStatistics,
    ConsultationPayload,
    WorkSessionPayload,
    TypeObservation,
    TypeTodo,
    Urgence,
)
from .errors import ValidationError, SummaryError
from .entity_cache import CollectionCache
from .patient_matcher import PatientNameMatcher, parse_name_list
from .workspace import (
    Workspace,
    ActiveModule,
    list_tab,
    patient_tab,
    consultation_tab,
    work_session_tab,
)
from ..config import SIMILAR_LIMIT, SUMMARY_OBSERVATION_LIMIT
from ..reporting.audit_logger import ImportAuditLogger
from ..store.ai_client import build_summary_prompt
from ..utils.date_utils import calculate_age_in_days
from ..utils.grouping import CompletionStats, completion_stats


class ClinicalService:
    """Service for clinic workflows spanning the store and the workspace."""

    def __init__(self,
                 store,
                 workspace: Optional[Workspace] = None,
                 active_module: Optional[ActiveModule] = None,
                 summary_client=None,
                 similar_limit: int = SIMILAR_LIMIT):
        """
        Initialize the service.

        Args:
            store: Store client (see store.rest_client.RestStoreClient)
            workspace: Workspace receiving opened/closed tabs
            active_module: Active module holder
            summary_client: AI summarization client (optional)
            similar_limit: Suggestions offered for unmatched names
        """
        self.store = store
        self.workspace = workspace or Workspace()
        self.active_module = active_module or ActiveModule()
        self.summary_client = summary_client
        self.collections = CollectionCache(store)
        self.matcher = PatientNameMatcher(similar_limit)
        self.audit = ImportAuditLogger()

    # -- attendee import ---------------------------------------------------

    def import_attendees(self, consultation_id: str, name_text: str) -> ImportReport:
        """
        Create one observation per recognised attendee of a consultation.

        Args:
            consultation_id: Consultation receiving the observations
            name_text: Pasted names, one per line or comma separated

        Returns:
            ImportReport with created observations and unmatched names

        Raises:
            ValidationError: if the list holds no name
            StoreError: if loading or the bulk insert fails
        """
        names = parse_name_list(name_text)
        if not names:
            raise ValidationError("The attendee list is empty")

        consultation = self.store.get_consultation(consultation_id)
        roster = self.collections.get('patients')

        logging.info(f"Importing {len(names)} attendee(s) into consultation {consultation_id}")
        self.matcher.reset_session_statistics()
        report = ImportReport(consultation_id=consultation_id)
        rows: List[Dict[str, Any]] = []

        for name in names:
            result = self.matcher.match(name, roster)
            self.audit.log_match_decision(result, consultation_id)
            if result.match_found:
                rows.append(self._attendee_observation(result.patient, consultation))
            else:
                report.unmatched.append((name, result.suggestions))

        if rows:
            created = self.store.create_many('observations', rows)
            report.created = [Observation.from_dict(row) for row in created]
            self.collections.invalidate('observations')

        self.audit.log_session_summary(self.matcher.get_session_statistics())
        return report

    def get_import_statistics(self) -> ImportStatistics:
        return self.matcher.get_session_statistics()

    def _attendee_observation(self, patient: Patient, consultation: Consultation) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            'patient_id': patient.id,
            'consultation_id': consultation.id,
            'date': consultation.date,
            'type_observation': TypeObservation.CONSULTATION.value,
            'contenu': "",
        }
        if patient.date_naissance:
            age = calculate_age_in_days(patient.date_naissance, consultation.date)
            if age is not None:
                row['age_patient_jours'] = age
        return row

    # -- consultations -----------------------------------------------------

    def create_consultation(self,
                            consultation_date: Optional[date] = None,
                            titre: Optional[str] = None,
                            consultation_type: str = "consultation",
                            tags: Optional[str] = None) -> Consultation:
        """Create a consultation and open its tab in the observations module."""
        day = consultation_date or date.today()
        row = {
            'date': day.isoformat(),
            'type': consultation_type,
            'titre': titre or f"Consultation du {day.strftime('%d/%m/%Y')}",
        }
        if tags:
            row['tags'] = tags

        consultation = Consultation.from_dict(self.store.create('consultations', row))
        self.collections.invalidate('consultations')

        self.open_tab(consultation_tab(consultation))
        logging.info(f"CONSULTATION_CREATED - {consultation.id} ({consultation.titre})")
        return consultation

    def update_consultation(self, consultation_id: str, **updates: Any) -> Consultation:
        """Update a consultation; a new title is mirrored on its open tab."""
        consultation = Consultation.from_dict(self.store.update('consultations', consultation_id, updates))
        self.collections.invalidate('consultations')

        if 'titre' in updates:
            tab = self._consultation_tab(consultation_id)
            if tab is not None:
                self.workspace.update_tab(tab.id, title=consultation.titre or "Consultation")
        return consultation

    def reap_empty_consultation(self, consultation_id: str) -> bool:
        """
        Delete a consultation that has no linked observation.

        The observation count is a snapshot taken now. When the consultation
        is deleted its tab is removed as well.

        Returns:
            True if the consultation was deleted
        """
        linked = self.store.list_observations(consultation_id=consultation_id)
        if linked:
            return False

        self.store.delete('consultations', consultation_id)
        self.collections.invalidate('consultations')

        tab = self._consultation_tab(consultation_id)
        if tab is not None:
            self.workspace.remove_tab(tab.id)
        logging.info(f"CONSULTATION_REAPED - {consultation_id} had no observation")
        return True

    # -- navigation --------------------------------------------------------

    def open_tab(self, tab: Tab) -> Tab:
        """
        Open or focus a tab, switching to its module.

        A consultation tab losing focus is reaped when empty.
        """
        self._leave_active_consultation(tab.identity)
        self.active_module.set(tab.module)
        return self.workspace.add_tab(tab)

    def activate_tab(self, tab_id: str) -> Optional[Tab]:
        """
        Focus an open tab, switching to its module.

        Returns:
            The focused tab, or None if no tab has that id
        """
        target = self.workspace.get_tab(tab_id)
        if target is None:
            return None
        self._leave_active_consultation(target.identity)
        self.active_module.set(target.module)
        self.workspace.set_active_tab(tab_id)
        return target

    def close_tab(self, tab_id: str) -> None:
        """
        Close a tab through the view-teardown path.

        Closing a consultation tab first reaps the consultation when empty.
        """
        tab = self.workspace.get_tab(tab_id)
        if tab is not None and tab.type == TabType.CONSULTATION:
            self.reap_empty_consultation(tab.entity_id)
        if self.workspace.get_tab(tab_id) is not None:
            self.workspace.remove_tab(tab_id)

    def show_module(self, module: ModuleType) -> None:
        """
        Display a module, provisioning its list tab on first display.

        An active consultation tab that gets hidden (other module) or loses
        focus (newly provisioned list tab) is reaped when empty.
        """
        current = self.workspace.active_tab
        if current is not None and (current.module != module or self.workspace.needs_list_tab(module)):
            self._leave_active_consultation(None)
        self.active_module.set(module)
        self.workspace.on_module_visible(module)

    def _leave_active_consultation(self, next_identity) -> None:
        current = self.workspace.active_tab
        if current is None or current.type != TabType.CONSULTATION:
            return
        if current.identity == next_identity:
            return
        self.reap_empty_consultation(current.entity_id)

    def _consultation_tab(self, consultation_id: str) -> Optional[Tab]:
        wanted = ConsultationPayload(consultation_id=consultation_id)
        for tab in self.workspace.tabs:
            if tab.type == TabType.CONSULTATION and tab.payload == wanted:
                return tab
        return None

    # -- patients and observations -----------------------------------------

    def create_patient(self, nom: str, prenom: str, new_tab_id: Optional[str] = None,
                       **fields: Any) -> Patient:
        """
        Create a patient dossier and replace the creation tab with its card.

        Raises:
            ValidationError: if nom or prenom is blank
        """
        if not nom or not nom.strip():
            raise ValidationError("Patient last name (nom) is required")
        if not prenom or not prenom.strip():
            raise ValidationError("Patient first name (prenom) is required")

        row = {'nom': nom.strip(), 'prenom': prenom.strip()}
        row.update({key: value for key, value in fields.items() if value not in (None, "")})

        patient = Patient.from_dict(self.store.create('patients', row))
        self.collections.invalidate('patients')

        if new_tab_id:
            self.workspace.remove_tab(new_tab_id)
        self.open_tab(patient_tab(patient))
        logging.info(f"PATIENT_CREATED - {patient.id} ({patient.full_name})")
        return patient

    def create_observation(self,
                           patient_id: Optional[str],
                           contenu: str = "",
                           type_observation: str = TypeObservation.NOTE.value,
                           observation_date: Optional[date] = None,
                           consultation_id: Optional[str] = None) -> Observation:
        """
        Record an observation for a patient.

        Raises:
            ValidationError: if no patient is selected
        """
        if not patient_id:
            raise ValidationError("A patient must be selected for an observation")

        day = observation_date or date.today()
        row: Dict[str, Any] = {
            'patient_id': patient_id,
            'date': day.isoformat(),
            'type_observation': type_observation,
            'contenu': contenu,
        }
        if consultation_id:
            row['consultation_id'] = consultation_id

        patient = self._cached_patient(patient_id)
        if patient is not None and patient.date_naissance:
            age = calculate_age_in_days(patient.date_naissance, day)
            if age is not None:
                row['age_patient_jours'] = age

        observation = Observation.from_dict(self.store.create('observations', row))
        self.collections.invalidate('observations')
        return observation

    def open_patient(self, patient_id: str) -> Tab:
        """Switch to the dossiers module and open or focus a patient's card."""
        patient = self._cached_patient(patient_id) or self.store.get_patient(patient_id)
        return self.open_tab(patient_tab(patient))

    def _cached_patient(self, patient_id: str) -> Optional[Patient]:
        if not self.collections.is_loaded('patients'):
            return None
        for patient in self.collections.get('patients'):
            if patient.id == patient_id:
                return patient
        return None

    # -- AI summary --------------------------------------------------------

    def generate_summary(self, patient_id: str) -> str:
        """
        Summarize a patient's recent observations and store the summary.

        Raises:
            ValidationError: if the patient has no observation
            SummaryError: if no summary client is configured or it fails
            StoreError: if loading or saving fails
        """
        if self.summary_client is None:
            raise SummaryError("No summarization endpoint configured")

        patient = self.store.get_patient(patient_id)
        observations = self.store.list_observations(patient_id=patient_id, limit=SUMMARY_OBSERVATION_LIMIT)
        if not observations:
            raise ValidationError("No observation to summarize for this patient")

        summary = self.summary_client.summarize(build_summary_prompt(patient, observations), patient_id)

        self.store.update('patients', patient_id, {
            'resume_ia': summary,
            'resume_updated_at': datetime.now(timezone.utc).isoformat(),
        })
        self.collections.invalidate('patients')
        logging.info(f"SUMMARY_SAVED - Patient {patient_id} ({len(observations)} observation(s))")
        return summary

    # -- todos -------------------------------------------------------------

    def create_todo(self,
                    patient_id: Optional[str],
                    contenu: str,
                    type_todo: str = TypeTodo.AUTRE.value,
                    urgence: str = Urgence.NORMALE.value,
                    date_echeance: Optional[date] = None,
                    work_session_id: Optional[str] = None,
                    tags: Optional[str] = None,
                    new_tab_id: Optional[str] = None) -> Todo:
        """
        Create an open todo; the creation tab gives way to the todos list.

        Raises:
            ValidationError: if no patient is selected or the content is blank
        """
        if not patient_id:
            raise ValidationError("A patient must be selected for a todo")
        if not contenu or not contenu.strip():
            raise ValidationError("Todo content (contenu) is required")

        row: Dict[str, Any] = {
            'patient_id': patient_id,
            'contenu': contenu,
            'type_todo': type_todo,
            'urgence': urgence,
            'completed': False,
        }
        if date_echeance:
            row['date_echeance'] = date_echeance.isoformat()
        if work_session_id:
            row['work_session_id'] = work_session_id
        if tags:
            row['tags'] = tags

        todo = Todo.from_dict(self.store.create('todos', row))
        self.collections.invalidate('todos')

        if new_tab_id:
            self.workspace.remove_tab(new_tab_id)
            self.open_tab(list_tab(ModuleType.TODOS))
        logging.info(f"TODO_CREATED - {todo.id} ({todo.urgence})")
        return todo

    def complete_todo(self, todo_id: str) -> Todo:
        todo = Todo.from_dict(self.store.update('todos', todo_id, {
            'completed': True,
            'completed_at': datetime.now(timezone.utc).isoformat(),
        }))
        self.collections.invalidate('todos')
        return todo

    def uncomplete_todo(self, todo_id: str) -> Todo:
        todo = Todo.from_dict(self.store.update('todos', todo_id, {
            'completed': False,
            'completed_at': None,
        }))
        self.collections.invalidate('todos')
        return todo

    # -- work sessions -----------------------------------------------------

    def create_work_session(self,
                            name: str,
                            session_date: Optional[date] = None,
                            description: Optional[str] = None,
                            tags: Optional[str] = None) -> WorkSession:
        """
        Create a work session and open its tab in the todos module.

        Raises:
            ValidationError: if the name is blank
        """
        if not name or not name.strip():
            raise ValidationError("Work session name is required")

        row: Dict[str, Any] = {'name': name.strip(), 'completed': False}
        if session_date:
            row['date'] = session_date.isoformat()
        if description:
            row['description'] = description
        if tags:
            row['tags'] = tags

        session = WorkSession.from_dict(self.store.create('work_sessions', row))
        self.collections.invalidate('work_sessions')

        self.open_tab(work_session_tab(session))
        logging.info(f"WORK_SESSION_CREATED - {session.id} ({session.name})")
        return session

    def complete_work_session(self, work_session_id: str) -> WorkSession:
        """Mark a work session completed; its open tab keeps the stored name."""
        session = WorkSession.from_dict(self.store.update('work_sessions', work_session_id, {'completed': True}))
        self.collections.invalidate('work_sessions')

        wanted = WorkSessionPayload(work_session_id=work_session_id)
        for tab in self.workspace.tabs:
            if tab.type == TabType.WORK_SESSION and tab.payload == wanted:
                self.workspace.update_tab(tab.id, title=session.name)
        progress = self.work_session_progress(work_session_id)
        logging.info(f"WORK_SESSION_COMPLETED - {work_session_id} "
                     f"({progress.completed}/{progress.total} todo(s) done)")
        return session

    def work_session_progress(self, work_session_id: str) -> CompletionStats:
        todos = [todo for todo in self.collections.get('todos') if todo.work_session_id == work_session_id]
        return completion_stats(todos)
