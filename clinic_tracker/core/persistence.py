"""
Workspace persistence.

The open tabs and the active tab id are written through to a key-value slot
on every mutation and read back at startup.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .data_models import Tab

WorkspaceState = Tuple[List[Tab], Optional[str]]


def serialize_state(tabs: List[Tab], active_tab_id: Optional[str]) -> Dict[str, Any]:
    """Serialize workspace state to its persisted shape."""
    return {
        'tabs': [tab.to_dict() for tab in tabs],
        'activeTabId': active_tab_id,
    }


def deserialize_state(data: Any) -> WorkspaceState:
    """
    Rebuild workspace state from its persisted shape.

    Raises:
        ValueError: if the data does not follow the workspace schema
    """
    if not isinstance(data, dict) or not isinstance(data.get('tabs', []), list):
        raise ValueError("Workspace state must be an object with a 'tabs' list")

    try:
        tabs = [Tab.from_dict(item) for item in data.get('tabs', [])]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid tab entry: {e}") from e

    active_tab_id = data.get('activeTabId')
    if active_tab_id is not None:
        active_tab_id = str(active_tab_id)
    return tabs, active_tab_id


class WorkspacePersistence:
    """In-memory persistence slot, used by default and in tests."""

    def __init__(self):
        self._data: Optional[Dict[str, Any]] = None

    def load(self) -> WorkspaceState:
        if self._data is None:
            return [], None
        return deserialize_state(self._data)

    def save(self, tabs: List[Tab], active_tab_id: Optional[str]) -> None:
        self._data = serialize_state(tabs, active_tab_id)


class JsonFileWorkspacePersistence(WorkspacePersistence):
    """
    JSON file persistence slot.

    Unknown or missing persisted data yields the initial empty state.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load(self) -> WorkspaceState:
        if not self.path.exists():
            self.logger.debug(f"No workspace file at {self.path}, starting empty")
            return [], None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return deserialize_state(data)
        except (OSError, ValueError) as e:
            self.logger.warning(f"WORKSPACE_RESET - Ignoring unreadable workspace file {self.path}: {e}")
            return [], None

    def save(self, tabs: List[Tab], active_tab_id: Optional[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(serialize_state(tabs, active_tab_id), f, ensure_ascii=False, indent=2)
