"""
Clinic Tracker Data Models

This module defines the entity snapshots fetched from the remote store and
the view descriptors (tabs) managed by the workspace.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional, Tuple, Union
from enum import Enum


class ModuleType(Enum):
    """Top-level application areas."""
    DOSSIERS = "dossiers"
    OBSERVATIONS = "observations"
    TODOS = "todos"


class TabType(Enum):
    """Kinds of views a tab can hold."""
    LIST = "list"
    PATIENT = "patient"
    CONSULTATION = "consultation"
    NEW = "new"
    WORK_SESSION = "work-session"


class TypeObservation(Enum):
    CONSULTATION = "consultation"
    SUIVI = "suivi"
    URGENCE = "urgence"
    TELEPHONE = "telephone"
    RESULTATS = "resultats"
    COURRIER = "courrier"
    REUNION = "reunion"
    NOTE = "note"


class TypeTodo(Enum):
    RAPPEL = "rappel"
    PRESCRIPTION = "prescription"
    EXAMEN = "examen"
    COURRIER = "courrier"
    RDV = "rdv"
    AVIS = "avis"
    ADMINISTRATIF = "administratif"
    AUTRE = "autre"


class Urgence(Enum):
    """Todo urgency, most urgent first."""
    CRITIQUE = "critique"
    HAUTE = "haute"
    NORMALE = "normale"
    BASSE = "basse"

    @property
    def rank(self) -> int:
        return URGENCE_ORDER[self.value]


URGENCE_ORDER = {'critique': 0, 'haute': 1, 'normale': 2, 'basse': 3}

CONSULTATION_TYPES = ['consultation', 'visite', 'reunion', 'staff', 'autre']


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the keys the dataclass declares (store rows carry extras)."""
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class Patient:
    """Patient dossier as returned by the store."""
    id: str
    nom: str
    prenom: str
    date_naissance: Optional[str] = None
    sexe: Optional[str] = None
    secteur: Optional[str] = None
    notes: Optional[str] = None
    resume_ia: Optional[str] = None
    resume_updated_at: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.nom} {self.prenom}"

    @property
    def display_name(self) -> str:
        return f"{self.nom.upper()} {self.prenom}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Patient':
        row = _known_fields(cls, data)
        row.setdefault('nom', '')
        row.setdefault('prenom', '')
        return cls(**row)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Observation:
    """Dated clinical observation, optionally linked to a consultation."""
    id: str
    patient_id: Optional[str]
    date: str
    type_observation: str = TypeObservation.NOTE.value
    contenu: Optional[str] = None
    consultation_id: Optional[str] = None
    age_patient_jours: Optional[int] = None
    created_at: Optional[str] = None
    patient: Optional[Patient] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Observation':
        row = _known_fields(cls, data)
        if isinstance(row.get('patient'), dict):
            row['patient'] = Patient.from_dict(row['patient'])
        row.setdefault('patient_id', None)
        row.setdefault('date', '')
        return cls(**row)


@dataclass
class Consultation:
    """Consultation or meeting grouping several observations."""
    id: str
    date: str
    titre: Optional[str] = None
    type: Optional[str] = None
    tags: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Consultation':
        row = _known_fields(cls, data)
        row.setdefault('date', '')
        return cls(**row)


@dataclass
class Todo:
    """Follow-up task, optionally attached to a patient and a work session."""
    id: str
    contenu: str
    type_todo: str = TypeTodo.AUTRE.value
    urgence: str = Urgence.NORMALE.value
    patient_id: Optional[str] = None
    observation_id: Optional[str] = None
    work_session_id: Optional[str] = None
    date_echeance: Optional[str] = None
    tags: Optional[str] = None
    completed: bool = False
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    patient: Optional[Patient] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Todo':
        row = _known_fields(cls, data)
        if isinstance(row.get('patient'), dict):
            row['patient'] = Patient.from_dict(row['patient'])
        row.setdefault('contenu', '')
        return cls(**row)


@dataclass
class WorkSession:
    """Named batch of todos tracked to completion."""
    id: str
    name: str
    date: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[str] = None
    completed: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkSession':
        row = _known_fields(cls, data)
        row.setdefault('name', '')
        return cls(**row)


# Tab payloads. Each tab type carries exactly the fields it needs; payloads
# are frozen so that deduplication compares them by value.

@dataclass(frozen=True)
class ListPayload:
    """List view filters as sorted (name, value) pairs; list values are kept as tuples."""
    filters: Tuple[Tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class PatientPayload:
    patient_id: str


@dataclass(frozen=True)
class ConsultationPayload:
    consultation_id: str


@dataclass(frozen=True)
class WorkSessionPayload:
    work_session_id: str


@dataclass(frozen=True)
class NewPayload:
    """Creation form payload, optionally prefilled for a patient or a todo."""
    patient_id: Optional[str] = None
    todo_id: Optional[str] = None


TabPayload = Union[ListPayload, PatientPayload, ConsultationPayload,
                   WorkSessionPayload, NewPayload, None]

# Serialized key of each payload field (camelCase in the persisted slot)
_PAYLOAD_KEYS = {
    'patient_id': 'patientId',
    'consultation_id': 'consultationId',
    'work_session_id': 'workSessionId',
    'todo_id': 'todoId',
    'filters': 'filters',
}


def payload_to_dict(payload: TabPayload) -> Optional[Dict[str, Any]]:
    """Serialize a tab payload to its persisted shape."""
    if payload is None:
        return None
    data: Dict[str, Any] = {}
    for f in fields(payload):
        value = getattr(payload, f.name)
        if value is None:
            continue
        if f.name == 'filters':
            value = {key: list(v) if isinstance(v, tuple) else v for key, v in value}
        data[_PAYLOAD_KEYS[f.name]] = value
    return data


_FILTER_SCALARS = (str, int, float, bool, type(None))


def _filter_value(name: str, value: Any) -> Any:
    """Keep a JSON scalar or a list of scalars (as a tuple) for a list filter."""
    if isinstance(value, _FILTER_SCALARS):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, _FILTER_SCALARS) for v in value):
        return tuple(value)
    raise ValueError(f"Unsupported value for filter '{name}': {value!r}")


def list_filters(filters: Dict[str, Any]) -> Tuple[Tuple[str, Any], ...]:
    """
    Convert a filter mapping to the ListPayload form.

    Raises:
        ValueError: if filters is not a mapping or holds a nested object
    """
    if not isinstance(filters, dict):
        raise ValueError(f"List filters must be an object: {filters!r}")
    return tuple(sorted((str(k), _filter_value(str(k), v)) for k, v in filters.items()))


def payload_from_dict(tab_type: TabType, data: Optional[Dict[str, Any]]) -> TabPayload:
    """
    Rebuild the typed payload for a tab type from its persisted shape.

    Raises:
        ValueError: if the data is not an object or a required identifier is missing
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Tab data must be an object: {data!r}")
    if tab_type == TabType.LIST:
        return ListPayload(filters=list_filters(data.get('filters') or {}))
    if tab_type == TabType.NEW:
        return NewPayload(patient_id=data.get('patientId'), todo_id=data.get('todoId'))
    if tab_type == TabType.PATIENT and 'patientId' in data:
        return PatientPayload(patient_id=data['patientId'])
    if tab_type == TabType.CONSULTATION and 'consultationId' in data:
        return ConsultationPayload(consultation_id=data['consultationId'])
    if tab_type == TabType.WORK_SESSION and 'workSessionId' in data:
        return WorkSessionPayload(work_session_id=data['workSessionId'])
    raise ValueError(f"Missing identifier for {tab_type.value} tab: {data}")


@dataclass
class Tab:
    """A single open view within a module."""
    id: str
    type: TabType
    module: ModuleType
    title: str
    payload: TabPayload = None

    @property
    def identity(self) -> Tuple[TabType, ModuleType, TabPayload]:
        """Value used to detect duplicate tabs."""
        return (self.type, self.module, self.payload)

    @property
    def entity_id(self) -> Optional[str]:
        """Identifier of the entity shown by a detail tab."""
        for name in ('patient_id', 'consultation_id', 'work_session_id', 'todo_id'):
            value = getattr(self.payload, name, None)
            if value:
                return value
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'module': self.module.value,
            'title': self.title,
            'data': payload_to_dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tab':
        tab_type = TabType(data['type'])
        return cls(
            id=str(data['id']),
            type=tab_type,
            module=ModuleType(data['module']),
            title=str(data.get('title', '')),
            payload=payload_from_dict(tab_type, data.get('data')),
        )


@dataclass
class ImportStatistics:
    """Statistics for a bulk attendee import session."""
    total_processed: int = 0
    matched: int = 0
    unmatched: int = 0

    def get_match_rate(self) -> float:
        """Calculate overall match rate."""
        if self.total_processed == 0:
            return 0.0
        return self.matched / self.total_processed


@dataclass
class ImportReport:
    """Outcome of importing an attendee list into a consultation."""
    consultation_id: str
    created: List[Observation] = field(default_factory=list)
    unmatched: List[Tuple[str, List[Patient]]] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)
