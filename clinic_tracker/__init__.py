"""Clinic Tracker - patient records, observations and follow-up tasks."""

from .core import (
    ModuleType,
    TabType,
    Tab,
    Patient,
    Observation,
    Consultation,
    Todo,
    WorkSession,
    Workspace,
    ActiveModule,
    ValidationError,
    StoreError,
    SummaryError,
)
from .core.clinical_service import ClinicalService

__version__ = "0.3.0"

__all__ = [
    'ModuleType',
    'TabType',
    'Tab',
    'Patient',
    'Observation',
    'Consultation',
    'Todo',
    'WorkSession',
    'Workspace',
    'ActiveModule',
    'ValidationError',
    'StoreError',
    'SummaryError',
    'ClinicalService',
]
