"""Core clinic tracker framework: entities, workspace, matching and search."""

# Import main classes for easier access
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
)
from .errors import ValidationError, StoreError, SummaryError
from .workspace import Workspace, ActiveModule
from .patient_matcher import PatientNameMatcher, match_patient, find_similar
from .global_search import search, open_search_result
from .module_router import route, ViewKind

__all__ = [
    'ModuleType',
    'TabType',
    'Tab',
    'Patient',
    'Observation',
    'Consultation',
    'Todo',
    'WorkSession',
    'ImportReport',
    'ImportStatistics',
    'ValidationError',
    'StoreError',
    'SummaryError',
    'Workspace',
    'ActiveModule',
    'PatientNameMatcher',
    'match_patient',
    'find_similar',
    'search',
    'open_search_result',
    'route',
    'ViewKind',
]
