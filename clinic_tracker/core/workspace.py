"""
Workspace - tab state machine.

The workspace owns the ordered list of open tabs and the active tab id.
Every transition writes the new state through to the persistence slot.
"""

import logging
import time
from dataclasses import fields, replace
from typing import Any, List, Optional

from .data_models import (
    ModuleType,
    TabType,
    Tab,
    ListPayload,
    PatientPayload,
    ConsultationPayload,
    WorkSessionPayload,
    NewPayload,
    Patient,
    Consultation,
    WorkSession,
)
from .persistence import WorkspacePersistence

# Prefix of the ids given to "new" tabs, per module
NEW_TAB_PREFIXES = {
    ModuleType.DOSSIERS: 'new-patient',
    ModuleType.OBSERVATIONS: 'new-obs',
    ModuleType.TODOS: 'new-todo',
}

TAB_FIELDS = {f.name for f in fields(Tab)}

LIST_TAB_TITLES = {
    ModuleType.DOSSIERS: 'Patients',
    ModuleType.OBSERVATIONS: 'Observations',
    ModuleType.TODOS: 'Todos',
}


def list_tab(module: ModuleType) -> Tab:
    """Build the persistent list tab of a module."""
    return Tab(
        id=f"list-{module.value}",
        type=TabType.LIST,
        module=module,
        title=LIST_TAB_TITLES[module],
        payload=ListPayload(),
    )


def patient_tab(patient: Patient) -> Tab:
    return Tab(
        id=f"patient-{patient.id}",
        type=TabType.PATIENT,
        module=ModuleType.DOSSIERS,
        title=patient.full_name,
        payload=PatientPayload(patient_id=patient.id),
    )


def consultation_tab(consultation: Consultation) -> Tab:
    return Tab(
        id=f"consultation-{consultation.id}",
        type=TabType.CONSULTATION,
        module=ModuleType.OBSERVATIONS,
        title=consultation.titre or "Consultation",
        payload=ConsultationPayload(consultation_id=consultation.id),
    )


def work_session_tab(session: WorkSession) -> Tab:
    return Tab(
        id=f"work-session-{session.id}",
        type=TabType.WORK_SESSION,
        module=ModuleType.TODOS,
        title=session.name,
        payload=WorkSessionPayload(work_session_id=session.id),
    )


def new_tab(module: ModuleType, title: str, patient_id: Optional[str] = None,
            todo_id: Optional[str] = None, timestamp_ms: Optional[int] = None) -> Tab:
    """
    Build an ephemeral creation-form tab.

    The id carries a millisecond timestamp so it never collides with an
    unrelated tab.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return Tab(
        id=f"{NEW_TAB_PREFIXES[module]}-{timestamp_ms}",
        type=TabType.NEW,
        module=module,
        title=title,
        payload=NewPayload(patient_id=patient_id, todo_id=todo_id),
    )


class ActiveModule:
    """Currently displayed module. Independent of the workspace."""

    def __init__(self, module: ModuleType = ModuleType.DOSSIERS):
        self.module = module

    def set(self, module: ModuleType) -> None:
        self.module = module


class Workspace:
    """
    Open tabs and the active tab, persisted across sessions.

    Tabs keep insertion order. No two tabs share the same
    (type, module, payload) identity: adding a duplicate focuses the
    existing tab instead.
    """

    def __init__(self, persistence: Optional[WorkspacePersistence] = None):
        """
        Initialize the workspace from its persistence slot.

        Args:
            persistence: Persistence slot (in-memory when omitted)
        """
        self.persistence = persistence or WorkspacePersistence()
        self.logger = logging.getLogger(__name__)
        self.tabs, self.active_tab_id = self.persistence.load()
        self._provisioned_modules = set()

    def _commit(self) -> None:
        self.persistence.save(self.tabs, self.active_tab_id)

    def _find_index(self, tab_id: str) -> int:
        for index, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return index
        return -1

    def get_tab(self, tab_id: Optional[str]) -> Optional[Tab]:
        if tab_id is None:
            return None
        index = self._find_index(tab_id)
        return self.tabs[index] if index >= 0 else None

    @property
    def active_tab(self) -> Optional[Tab]:
        return self.get_tab(self.active_tab_id)

    def add_tab(self, tab: Tab) -> Tab:
        """
        Open a tab, or focus the existing tab with the same identity.

        Args:
            tab: Tab to open

        Returns:
            The tab that is now active (existing or newly added)
        """
        for existing in self.tabs:
            if existing.identity == tab.identity:
                self.logger.debug(f"TAB_FOCUSED - {existing.id}")
                self.active_tab_id = existing.id
                self._commit()
                return existing

        self.tabs.append(tab)
        self.active_tab_id = tab.id
        self.logger.debug(f"TAB_OPENED - {tab.id}")
        self._commit()
        return tab

    def remove_tab(self, tab_id: str) -> None:
        """
        Close a tab.

        When the active tab is closed, the tab now occupying its position
        (clamped to the last one) becomes active, or None if no tab is left.
        """
        index = self._find_index(tab_id)
        self.tabs = [tab for tab in self.tabs if tab.id != tab_id]

        if self.active_tab_id == tab_id:
            if self.tabs and index >= 0:
                self.active_tab_id = self.tabs[min(index, len(self.tabs) - 1)].id
            else:
                self.active_tab_id = None

        self._commit()

    def set_active_tab(self, tab_id: Optional[str]) -> None:
        """Set the active tab id. The id is not validated."""
        self.active_tab_id = tab_id
        self._commit()

    def update_tab(self, tab_id: str, **updates: Any) -> None:
        """
        Shallow-merge fields into a tab (e.g. a new title). No-op if absent.

        Only Tab fields (id, type, module, title, payload) are merged; other
        names are ignored.
        """
        index = self._find_index(tab_id)
        if index < 0:
            return
        unknown = set(updates) - TAB_FIELDS
        if unknown:
            self.logger.debug(f"TAB_UPDATE_IGNORED - {tab_id}: {sorted(unknown)}")
        merged = {name: value for name, value in updates.items() if name in TAB_FIELDS}
        self.tabs[index] = replace(self.tabs[index], **merged)
        self._commit()

    def close_all_tabs(self) -> None:
        self.tabs = []
        self.active_tab_id = None
        self._commit()

    def close_other_tabs(self, tab_id: str) -> None:
        """
        Keep only the given tab and make it active.

        An unknown id leaves an empty tab list with a dangling active id.
        """
        self.tabs = [tab for tab in self.tabs if tab.id == tab_id]
        self.active_tab_id = tab_id
        self._commit()

    def tabs_for_module(self, module: ModuleType) -> List[Tab]:
        """Tabs shown in a module's tab bar."""
        return [tab for tab in self.tabs if tab.module == module]

    def active_tab_for_module(self, module: ModuleType) -> Optional[Tab]:
        tab = self.active_tab
        if tab is not None and tab.module == module:
            return tab
        return None

    def ensure_list_tab(self, module: ModuleType) -> Tab:
        """
        Make sure a module has its list tab.

        Idempotent: an existing list tab of the module is returned untouched
        and the active tab is left as is. A missing one is opened through
        add_tab and becomes active.
        """
        for tab in self.tabs:
            if tab.module == module and tab.type == TabType.LIST:
                return tab
        return self.add_tab(list_tab(module))

    def needs_list_tab(self, module: ModuleType) -> bool:
        """Whether on_module_visible would open a list tab for the module."""
        if module in self._provisioned_modules:
            return False
        return not any(tab.module == module and tab.type == TabType.LIST for tab in self.tabs)

    def on_module_visible(self, module: ModuleType) -> None:
        """Provision the list tab the first time a module is shown in a session."""
        if module in self._provisioned_modules:
            return
        self._provisioned_modules.add(module)
        self.ensure_list_tab(module)
