"""
Module router.

Chooses the top-level view of a module from its active tab.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .data_models import ModuleType, TabType, Tab
from .workspace import Workspace


class ViewKind(Enum):
    LIST = "list"
    PATIENT_DETAIL = "patient_detail"
    CONSULTATION_DETAIL = "consultation_detail"
    WORK_SESSION_DETAIL = "work_session_detail"
    CREATE_FORM = "create_form"


@dataclass
class RouteDecision:
    view: ViewKind
    entity_id: Optional[str] = None
    tab: Optional[Tab] = None


_DETAIL_VIEWS = {
    TabType.PATIENT: ViewKind.PATIENT_DETAIL,
    TabType.CONSULTATION: ViewKind.CONSULTATION_DETAIL,
    TabType.WORK_SESSION: ViewKind.WORK_SESSION_DETAIL,
}


def route(workspace: Workspace, module: ModuleType) -> RouteDecision:
    """
    Decide which view to render for a module.

    Falls back to the list view when the module has no active tab, when the
    active id is dangling, or when a detail tab carries no entity id.
    """
    tab = workspace.active_tab_for_module(module)
    if tab is None:
        return RouteDecision(view=ViewKind.LIST)

    if tab.type == TabType.NEW:
        return RouteDecision(view=ViewKind.CREATE_FORM, tab=tab)

    view = _DETAIL_VIEWS.get(tab.type)
    entity_id = tab.entity_id
    if view is not None and entity_id:
        return RouteDecision(view=view, entity_id=entity_id, tab=tab)

    return RouteDecision(view=ViewKind.LIST, tab=tab)
