"""
Global search across patients, consultations, observations and todos.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .data_models import Patient, Observation, Consultation, Todo, ModuleType, Tab
from .workspace import Workspace, ActiveModule, patient_tab, consultation_tab, list_tab
from ..utils.normalizers import normalize_string

logger = logging.getLogger(__name__)


class ResultKind(Enum):
    PATIENT = "patients"
    CONSULTATION = "consultations"
    OBSERVATION = "observations"
    TODO = "todos"


# Display order of result categories
CATEGORY_ORDER = (ResultKind.PATIENT, ResultKind.CONSULTATION,
                  ResultKind.OBSERVATION, ResultKind.TODO)


@dataclass
class SearchResults:
    patients: List[Patient] = field(default_factory=list)
    observations: List[Observation] = field(default_factory=list)
    consultations: List[Consultation] = field(default_factory=list)
    todos: List[Todo] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.patients) + len(self.observations) + len(self.consultations) + len(self.todos)

    def categories(self) -> Iterator[Tuple[ResultKind, list]]:
        """Result lists in display order: patients, consultations, observations, todos."""
        for kind in CATEGORY_ORDER:
            yield kind, getattr(self, kind.value)


def _contains(term: str, values: Iterable[Optional[str]]) -> bool:
    return any(term in normalize_string(value) for value in values if value)


def _patient_fields(patient: Patient) -> List[str]:
    nom = normalize_string(patient.nom)
    prenom = normalize_string(patient.prenom)
    return [nom, prenom, f"{nom} {prenom}", f"{prenom} {nom}", patient.secteur or ""]


def _owner_names(item) -> List[str]:
    patient = getattr(item, 'patient', None)
    if patient is None:
        return []
    return [patient.nom, patient.prenom]


def search(query: str,
           patients: Sequence[Patient] = (),
           observations: Sequence[Observation] = (),
           consultations: Sequence[Consultation] = (),
           todos: Sequence[Todo] = (),
           limit: int = 5) -> SearchResults:
    """
    Search every entity collection for a normalized substring.

    A blank query returns empty results, never everything.

    Args:
        query: Text typed in the search box
        patients, observations, consultations, todos: Loaded collections
        limit: Maximum results per category

    Returns:
        SearchResults with at most `limit` entries per category
    """
    if not query or not query.strip():
        return SearchResults()

    term = normalize_string(query.strip())

    def first(items, predicate):
        matched = []
        for item in items:
            if len(matched) >= limit:
                break
            if predicate(item):
                matched.append(item)
        return matched

    results = SearchResults(
        patients=first(patients, lambda p: _contains(term, _patient_fields(p))),
        observations=first(observations, lambda o: _contains(term, [o.contenu] + _owner_names(o))),
        consultations=first(consultations, lambda c: _contains(term, [c.titre, c.type, c.tags])),
        todos=first(todos, lambda t: _contains(term, [t.contenu, t.type_todo, t.tags] + _owner_names(t))),
    )
    logger.debug(f"SEARCH - '{query}' -> {results.total} result(s)")
    return results


def tab_for_result(kind: ResultKind, entity) -> Tuple[ModuleType, Tab]:
    """
    Module and tab a search result opens.

    Observations and todos open their patient's dossier; a todo without a
    patient opens the todos list.
    """
    if kind == ResultKind.PATIENT:
        return ModuleType.DOSSIERS, patient_tab(entity)
    if kind == ResultKind.CONSULTATION:
        return ModuleType.OBSERVATIONS, consultation_tab(entity)

    patient = getattr(entity, 'patient', None)
    if patient is not None:
        return ModuleType.DOSSIERS, patient_tab(patient)

    module = ModuleType.OBSERVATIONS if kind == ResultKind.OBSERVATION else ModuleType.TODOS
    return module, list_tab(module)


def open_search_result(kind: ResultKind, entity, workspace: Workspace, active_module: ActiveModule) -> Tab:
    """
    Select a search result: switch to its module and open or focus its tab.

    Returns:
        The tab now active
    """
    module, tab = tab_for_result(kind, entity)
    active_module.set(module)
    return workspace.add_tab(tab)
