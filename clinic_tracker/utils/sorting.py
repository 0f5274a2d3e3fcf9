"""
Sortable table columns.

Sorting is stable: items with equal keys keep their relative order in both
directions.
"""

import locale
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence, TypeVar

from .normalizers import normalize_string
from .date_utils import parse_datetime

T = TypeVar('T')

_MISSING_DATE = datetime(1970, 1, 1)


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> 'SortDirection':
        return SortDirection.DESC if self == SortDirection.ASC else SortDirection.ASC


class FieldKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


@dataclass(frozen=True)
class SortState:
    """Active sort column and direction of a table."""
    field: str
    direction: SortDirection = SortDirection.ASC

    def toggle(self, field: str) -> 'SortState':
        """Same column flips the direction, a new column starts ascending."""
        if field == self.field:
            return SortState(field, self.direction.flipped())
        return SortState(field, SortDirection.ASC)


@dataclass(frozen=True)
class SortColumn:
    kind: FieldKind
    accessor: Callable[[Any], Any]


def attr(name: str) -> Callable[[Any], Any]:
    return lambda item: getattr(item, name, None)


def _text_key(value: Any) -> Any:
    text = "" if value is None else str(value)
    return (locale.strxfrm(normalize_string(text)), locale.strxfrm(text))


def _number_key(value: Any) -> float:
    if value is None or value == "":
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _date_key(value: Any) -> datetime:
    return parse_datetime(value) or _MISSING_DATE


_KEY_FUNCTIONS = {
    FieldKind.TEXT: _text_key,
    FieldKind.NUMBER: _number_key,
    FieldKind.DATE: _date_key,
}


def sort_items(items: Sequence[T], state: SortState, columns: Dict[str, SortColumn]) -> List[T]:
    """
    Sort items by the active column.

    Args:
        items: Entities to sort
        state: Active column and direction
        columns: Column definitions keyed by field name

    Returns:
        New sorted list

    Raises:
        KeyError: if the active field is not a known column
    """
    column = columns[state.field]
    key_function = _KEY_FUNCTIONS[column.kind]
    return sorted(
        items,
        key=lambda item: key_function(column.accessor(item)),
        reverse=state.direction == SortDirection.DESC,
    )


def _patient_name(item: Any) -> str:
    patient = getattr(item, 'patient', None)
    return patient.full_name if patient is not None else ""


PATIENT_COLUMNS = {
    'nom': SortColumn(FieldKind.TEXT, attr('nom')),
    'prenom': SortColumn(FieldKind.TEXT, attr('prenom')),
    'date_naissance': SortColumn(FieldKind.DATE, attr('date_naissance')),
    'secteur': SortColumn(FieldKind.TEXT, attr('secteur')),
}

OBSERVATION_COLUMNS = {
    'date': SortColumn(FieldKind.DATE, attr('date')),
    'type_observation': SortColumn(FieldKind.TEXT, attr('type_observation')),
    'patient': SortColumn(FieldKind.TEXT, _patient_name),
    'age_patient_jours': SortColumn(FieldKind.NUMBER, attr('age_patient_jours')),
}

CONSULTATION_COLUMNS = {
    'titre': SortColumn(FieldKind.TEXT, attr('titre')),
    'date': SortColumn(FieldKind.DATE, attr('date')),
    'type': SortColumn(FieldKind.TEXT, attr('type')),
    'tags': SortColumn(FieldKind.TEXT, attr('tags')),
}

TODO_COLUMNS = {
    'contenu': SortColumn(FieldKind.TEXT, attr('contenu')),
    'type_todo': SortColumn(FieldKind.TEXT, attr('type_todo')),
    'date_echeance': SortColumn(FieldKind.DATE, attr('date_echeance')),
    'patient': SortColumn(FieldKind.TEXT, _patient_name),
}
