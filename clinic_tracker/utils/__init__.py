"""Utility functions for filtering, sorting and grouping clinic records."""

# Import key functions for easier access
from .normalizers import normalize_string, split_tags, unique_tags
from .date_utils import calculate_age_in_days, format_age_at_date, format_age_days
from .filters import FilterCriteria, filter_by_date_range
from .sorting import SortDirection, SortState, sort_items
from .grouping import group_by_patient, group_by_type, sort_by_urgency, completion_stats

__all__ = [
    'normalize_string',
    'split_tags',
    'unique_tags',
    'calculate_age_in_days',
    'format_age_at_date',
    'format_age_days',
    'FilterCriteria',
    'filter_by_date_range',
    'SortDirection',
    'SortState',
    'sort_items',
    'group_by_patient',
    'group_by_type',
    'sort_by_urgency',
    'completion_stats',
]
