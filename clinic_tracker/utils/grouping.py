"""
Grouping of todos for the grouped views.

Buckets keep first-seen order; items inside a bucket are ordered by urgency
(critique first) and then by due date, undated items last.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.data_models import Patient, URGENCE_ORDER
from .date_utils import parse_datetime

NO_PATIENT_KEY = "__no_patient__"
NO_TYPE_KEY = "__no_type__"


@dataclass
class TodoGroup:
    key: str
    patient: Optional[Patient] = None
    items: List[Any] = field(default_factory=list)


@dataclass
class CompletionStats:
    total: int
    completed: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def status(self) -> str:
        if self.total == 0:
            return "empty"
        if self.completed == self.total:
            return "done"
        if self.completed == 0:
            return "not_started"
        return "in_progress"


def urgency_rank(value: Optional[str]) -> int:
    """Ordinal of an urgency value; unknown values rank after "basse"."""
    return URGENCE_ORDER.get(value or "", len(URGENCE_ORDER))


def _bucket_sort_key(item: Any):
    due: Optional[datetime] = parse_datetime(getattr(item, 'date_echeance', None))
    return (
        urgency_rank(getattr(item, 'urgence', None)),
        due is None,
        due or datetime.min,
    )


def sort_by_urgency(items: Sequence[Any]) -> List[Any]:
    """Urgency ascending, then due date ascending with undated items last."""
    return sorted(items, key=_bucket_sort_key)


def _group(items: Sequence[Any], key_of: Callable[[Any], str]) -> Dict[str, TodoGroup]:
    groups: Dict[str, TodoGroup] = {}
    for item in items:
        key = key_of(item)
        group = groups.get(key)
        if group is None:
            group = groups[key] = TodoGroup(key=key, patient=getattr(item, 'patient', None))
        elif group.patient is None:
            group.patient = getattr(item, 'patient', None)
        group.items.append(item)

    for group in groups.values():
        group.items = sort_by_urgency(group.items)
    return groups


def group_by_patient(items: Sequence[Any]) -> Dict[str, TodoGroup]:
    """Partition items by patient_id (NO_PATIENT_KEY when absent)."""
    return _group(items, lambda item: getattr(item, 'patient_id', None) or NO_PATIENT_KEY)


def group_by_type(items: Sequence[Any], attribute: str = 'type_todo') -> Dict[str, TodoGroup]:
    """Partition items by their type value."""
    groups = _group(items, lambda item: getattr(item, attribute, None) or NO_TYPE_KEY)
    for group in groups.values():
        group.patient = None
    return groups


def completion_stats(todos: Sequence[Any]) -> CompletionStats:
    """Completion counts of a work session's todos."""
    return CompletionStats(
        total=len(todos),
        completed=sum(1 for todo in todos if getattr(todo, 'completed', False)),
    )
