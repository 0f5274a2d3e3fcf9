"""
Multi-criteria filters over in-memory entity lists.

Every filter is pure and keeps the input order. An empty selection means
"no filtering".
"""

from dataclasses import dataclass, field
from datetime import date
from typing import AbstractSet, Any, List, Optional, Sequence, TypeVar

from .normalizers import split_tags
from .date_utils import day_bounds, parse_datetime

T = TypeVar('T')

# Attribute holding the type of each entity kind, tried in order
TYPE_ATTRIBUTES = ('type_observation', 'type_todo', 'type')


def sector_of(item: Any) -> Optional[str]:
    """Sector string of a patient, or of the patient owning an item."""
    if hasattr(item, 'secteur'):
        return item.secteur
    patient = getattr(item, 'patient', None)
    return getattr(patient, 'secteur', None) if patient is not None else None


def type_of(item: Any) -> Optional[str]:
    for attribute in TYPE_ATTRIBUTES:
        if hasattr(item, attribute):
            return getattr(item, attribute)
    return None


def filter_by_sector(items: Sequence[T], selected: AbstractSet[str]) -> List[T]:
    """Keep items whose (owning patient's) sectors intersect the selection."""
    if not selected:
        return list(items)
    return [item for item in items if set(split_tags(sector_of(item))) & selected]


def filter_by_type(items: Sequence[T], selected: AbstractSet[str]) -> List[T]:
    """Keep items whose observation/todo/consultation type is selected."""
    if not selected:
        return list(items)
    return [item for item in items if type_of(item) in selected]


def filter_by_tags(items: Sequence[T], selected: AbstractSet[str]) -> List[T]:
    """Keep items whose tags intersect the selection."""
    if not selected:
        return list(items)
    return [item for item in items if set(split_tags(getattr(item, 'tags', None))) & selected]


def filter_by_date_range(items: Sequence[T],
                         start: Optional[date],
                         end: Optional[date] = None,
                         attribute: str = 'date') -> List[T]:
    """
    Keep items dated within [start 00:00:00, end 23:59:59].

    With only a start date the window is that single day. Without a start
    date no filtering is applied. Items with no date are dropped by an
    active filter.

    Args:
        items: Entities to filter
        start: First day of the window
        end: Last day of the window (defaults to start)
        attribute: Name of the date attribute ("date", "date_echeance")
    """
    if start is None:
        return list(items)

    low, high = day_bounds(start, end)
    kept = []
    for item in items:
        when = parse_datetime(getattr(item, attribute, None))
        if when is not None and low <= when <= high:
            kept.append(item)
    return kept


@dataclass
class FilterCriteria:
    """Active filter selections of a list view."""
    sectors: AbstractSet[str] = field(default_factory=frozenset)
    types: AbstractSet[str] = field(default_factory=frozenset)
    tags: AbstractSet[str] = field(default_factory=frozenset)
    start: Optional[date] = None
    end: Optional[date] = None
    date_attribute: str = 'date'

    def apply(self, items: Sequence[T]) -> List[T]:
        result = filter_by_sector(items, self.sectors)
        result = filter_by_type(result, self.types)
        result = filter_by_tags(result, self.tags)
        return filter_by_date_range(result, self.start, self.end, self.date_attribute)
