"""
Tests for the workspace tab state machine and its persistence.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from clinic_tracker.core.data_models import (
    ModuleType,
    TabType,
    Tab,
    Patient,
    Consultation,
    WorkSession,
    PatientPayload,
    NewPayload,
    payload_from_dict,
)
from clinic_tracker.core.persistence import (
    JsonFileWorkspacePersistence,
    WorkspacePersistence,
    serialize_state,
    deserialize_state,
)
from clinic_tracker.core.workspace import (
    Workspace,
    ActiveModule,
    list_tab,
    patient_tab,
    consultation_tab,
    work_session_tab,
    new_tab,
)


def _patient(pid, nom="Durand", prenom="Marie"):
    return Patient(id=pid, nom=nom, prenom=prenom)


class TestTabFactories(unittest.TestCase):

    def test_ids_and_titles(self):
        tab = patient_tab(_patient("42"))
        self.assertEqual(tab.id, "patient-42")
        self.assertEqual(tab.title, "Durand Marie")
        self.assertEqual(tab.module, ModuleType.DOSSIERS)
        self.assertEqual(tab.entity_id, "42")

        tab = consultation_tab(Consultation(id="c1", date="2024-03-15"))
        self.assertEqual(tab.id, "consultation-c1")
        self.assertEqual(tab.title, "Consultation")
        self.assertEqual(tab.module, ModuleType.OBSERVATIONS)

        tab = work_session_tab(WorkSession(id="w1", name="Courriers"))
        self.assertEqual(tab.id, "work-session-w1")
        self.assertEqual(tab.type, TabType.WORK_SESSION)
        self.assertEqual(tab.module, ModuleType.TODOS)

        tab = list_tab(ModuleType.TODOS)
        self.assertEqual(tab.id, "list-todos")
        self.assertEqual(tab.type, TabType.LIST)

    def test_new_tab(self):
        tab = new_tab(ModuleType.DOSSIERS, "Nouveau patient", timestamp_ms=1700000000000)
        self.assertEqual(tab.id, "new-patient-1700000000000")
        self.assertEqual(tab.payload, NewPayload())

        tab = new_tab(ModuleType.TODOS, "Nouvelle tâche", patient_id="p1", timestamp_ms=5)
        self.assertEqual(tab.id, "new-todo-5")
        self.assertEqual(tab.entity_id, "p1")


class TestWorkspaceTransitions(unittest.TestCase):
    """Test cases for the tab state machine."""

    def setUp(self):
        self.workspace = Workspace()
        self.a = patient_tab(_patient("a"))
        self.b = patient_tab(_patient("b"))
        self.c = patient_tab(_patient("c"))

    def _open_all(self):
        for tab in (self.a, self.b, self.c):
            self.workspace.add_tab(tab)

    def test_add_tab_appends_and_activates(self):
        self._open_all()
        self.assertEqual([t.id for t in self.workspace.tabs], ["patient-a", "patient-b", "patient-c"])
        self.assertEqual(self.workspace.active_tab_id, "patient-c")

    def test_add_duplicate_focuses_existing(self):
        self._open_all()
        duplicate = Tab(id="other-id", type=TabType.PATIENT, module=ModuleType.DOSSIERS,
                        title="Renamed", payload=PatientPayload(patient_id="a"))

        returned = self.workspace.add_tab(duplicate)

        self.assertIs(returned, self.a)
        self.assertEqual(len(self.workspace.tabs), 3)
        self.assertEqual(self.workspace.active_tab_id, "patient-a")
        self.assertEqual(self.workspace.get_tab("patient-a").title, "Durand Marie")

    def test_same_payload_in_other_module_is_distinct(self):
        self.workspace.add_tab(list_tab(ModuleType.DOSSIERS))
        self.workspace.add_tab(list_tab(ModuleType.TODOS))
        self.assertEqual(len(self.workspace.tabs), 2)

    def test_blank_new_tabs_deduplicate(self):
        first = self.workspace.add_tab(new_tab(ModuleType.DOSSIERS, "Nouveau", timestamp_ms=1))
        self.workspace.add_tab(self.a)
        returned = self.workspace.add_tab(new_tab(ModuleType.DOSSIERS, "Nouveau", timestamp_ms=2))

        self.assertIs(returned, first)
        self.assertEqual(self.workspace.active_tab_id, "new-patient-1")

    def test_remove_active_tab_picks_tab_at_same_position(self):
        self._open_all()
        self.workspace.set_active_tab("patient-b")
        self.workspace.remove_tab("patient-b")
        self.assertEqual(self.workspace.active_tab_id, "patient-c")

    def test_remove_last_active_tab_clamps(self):
        self._open_all()
        self.workspace.remove_tab("patient-c")
        self.assertEqual(self.workspace.active_tab_id, "patient-b")

    def test_remove_inactive_tab_keeps_active(self):
        self._open_all()
        self.workspace.remove_tab("patient-a")
        self.assertEqual([t.id for t in self.workspace.tabs], ["patient-b", "patient-c"])
        self.assertEqual(self.workspace.active_tab_id, "patient-c")

    def test_remove_only_tab(self):
        self.workspace.add_tab(self.a)
        self.workspace.remove_tab("patient-a")
        self.assertEqual(self.workspace.tabs, [])
        self.assertIsNone(self.workspace.active_tab_id)

    def test_remove_unknown_dangling_active_id(self):
        self._open_all()
        self.workspace.set_active_tab("ghost")
        self.workspace.remove_tab("ghost")
        self.assertEqual(len(self.workspace.tabs), 3)
        self.assertIsNone(self.workspace.active_tab_id)

    def test_set_active_tab_is_not_validated(self):
        self._open_all()
        self.workspace.set_active_tab("ghost")
        self.assertEqual(self.workspace.active_tab_id, "ghost")
        self.assertIsNone(self.workspace.active_tab)

    def test_update_tab(self):
        self._open_all()
        self.workspace.update_tab("patient-b", title="Dupont Jean")
        self.assertEqual(self.workspace.get_tab("patient-b").title, "Dupont Jean")
        self.assertEqual(self.workspace.get_tab("patient-b").payload, PatientPayload(patient_id="b"))

        self.workspace.update_tab("ghost", title="x")
        self.assertEqual(len(self.workspace.tabs), 3)

    def test_update_tab_ignores_unknown_fields(self):
        self._open_all()
        self.workspace.update_tab("patient-a", title="Durand Marie-Anne", colour="red")
        tab = self.workspace.get_tab("patient-a")
        self.assertEqual(tab.title, "Durand Marie-Anne")
        self.assertFalse(hasattr(tab, 'colour'))

    def test_close_all_tabs(self):
        self._open_all()
        self.workspace.close_all_tabs()
        self.assertEqual(self.workspace.tabs, [])
        self.assertIsNone(self.workspace.active_tab_id)

    def test_close_other_tabs(self):
        self._open_all()
        self.workspace.close_other_tabs("patient-b")
        self.assertEqual([t.id for t in self.workspace.tabs], ["patient-b"])
        self.assertEqual(self.workspace.active_tab_id, "patient-b")

    def test_close_other_tabs_unknown_id_leaves_dangling_active(self):
        """Regression: an unknown id empties the workspace but stays active."""
        self._open_all()
        self.workspace.close_other_tabs("ghost")
        self.assertEqual(self.workspace.tabs, [])
        self.assertEqual(self.workspace.active_tab_id, "ghost")

    def test_tabs_for_module(self):
        self._open_all()
        consultation = self.workspace.add_tab(consultation_tab(Consultation(id="c1", date="2024-01-01")))

        self.assertEqual(len(self.workspace.tabs_for_module(ModuleType.DOSSIERS)), 3)
        self.assertEqual(self.workspace.tabs_for_module(ModuleType.OBSERVATIONS), [consultation])
        self.assertIs(self.workspace.active_tab_for_module(ModuleType.OBSERVATIONS), consultation)
        self.assertIsNone(self.workspace.active_tab_for_module(ModuleType.DOSSIERS))

    def test_ensure_list_tab_is_idempotent(self):
        created = self.workspace.ensure_list_tab(ModuleType.DOSSIERS)
        self.workspace.add_tab(self.a)

        again = self.workspace.ensure_list_tab(ModuleType.DOSSIERS)

        self.assertIs(again, created)
        self.assertEqual(len(self.workspace.tabs), 2)
        self.assertEqual(self.workspace.active_tab_id, "patient-a")

    def test_on_module_visible_provisions_once(self):
        self.workspace.on_module_visible(ModuleType.TODOS)
        self.assertEqual([t.id for t in self.workspace.tabs], ["list-todos"])

        self.workspace.remove_tab("list-todos")
        self.workspace.on_module_visible(ModuleType.TODOS)
        self.assertEqual(self.workspace.tabs, [])

    def test_needs_list_tab(self):
        self.assertTrue(self.workspace.needs_list_tab(ModuleType.DOSSIERS))
        self.workspace.ensure_list_tab(ModuleType.DOSSIERS)
        self.assertFalse(self.workspace.needs_list_tab(ModuleType.DOSSIERS))

        self.workspace.on_module_visible(ModuleType.TODOS)
        self.workspace.remove_tab("list-todos")
        self.assertFalse(self.workspace.needs_list_tab(ModuleType.TODOS))


class TestActiveModule(unittest.TestCase):

    def test_default_and_set(self):
        active = ActiveModule()
        self.assertEqual(active.module, ModuleType.DOSSIERS)
        active.set(ModuleType.TODOS)
        self.assertEqual(active.module, ModuleType.TODOS)


class TestPersistence(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = Path(self.temp_dir) / "nested" / "tabs-storage.json"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_serialized_shape(self):
        tab = patient_tab(_patient("7"))
        data = serialize_state([tab], "patient-7")
        self.assertEqual(data, {
            'tabs': [{
                'id': 'patient-7',
                'type': 'patient',
                'module': 'dossiers',
                'title': 'Durand Marie',
                'data': {'patientId': '7'},
            }],
            'activeTabId': 'patient-7',
        })

    def test_round_trip_through_file(self):
        workspace = Workspace(JsonFileWorkspacePersistence(str(self.path)))
        workspace.ensure_list_tab(ModuleType.DOSSIERS)
        workspace.add_tab(patient_tab(_patient("1")))
        workspace.add_tab(consultation_tab(Consultation(id="c9", date="2024-01-01", titre="Staff")))
        workspace.add_tab(new_tab(ModuleType.TODOS, "Nouvelle tâche", patient_id="1", todo_id="t3",
                                  timestamp_ms=10))
        workspace.set_active_tab("patient-1")

        restored = Workspace(JsonFileWorkspacePersistence(str(self.path)))

        self.assertEqual(restored.tabs, workspace.tabs)
        self.assertEqual(restored.active_tab_id, "patient-1")

    def test_writes_through_on_every_transition(self):
        workspace = Workspace(JsonFileWorkspacePersistence(str(self.path)))
        workspace.add_tab(patient_tab(_patient("1")))
        workspace.add_tab(patient_tab(_patient("2")))
        workspace.remove_tab("patient-2")

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self.assertEqual([t['id'] for t in data['tabs']], ["patient-1"])
        self.assertEqual(data['activeTabId'], "patient-1")

    def test_corrupt_file_starts_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding='utf-8')

        with self.assertLogs('clinic_tracker.core.persistence', level='WARNING'):
            workspace = Workspace(JsonFileWorkspacePersistence(str(self.path)))
        self.assertEqual(workspace.tabs, [])
        self.assertIsNone(workspace.active_tab_id)

    def test_unknown_tab_type_starts_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({
            'tabs': [{'id': 'x', 'type': 'spreadsheet', 'module': 'dossiers', 'title': 'X'}],
            'activeTabId': 'x',
        }), encoding='utf-8')

        with self.assertLogs('clinic_tracker.core.persistence', level='WARNING'):
            workspace = Workspace(JsonFileWorkspacePersistence(str(self.path)))
        self.assertEqual(workspace.tabs, [])

    def test_malformed_tab_data_starts_empty(self):
        self.path.parent.mkdir(parents=True)
        malformed = [
            {'id': 'x', 'type': 'list', 'module': 'todos', 'data': 'oops'},
            {'id': 'x', 'type': 'list', 'module': 'todos', 'data': {'filters': ['a']}},
            {'id': 'x', 'type': 'list', 'module': 'todos', 'data': {'filters': {'types': {'nested': 1}}}},
            {'id': 'x', 'type': 'patient', 'module': 'dossiers', 'data': ['p1']},
            'not-a-tab',
        ]
        for entry in malformed:
            self.path.write_text(json.dumps({'tabs': [entry], 'activeTabId': 'x'}), encoding='utf-8')

            with self.assertLogs('clinic_tracker.core.persistence', level='WARNING'):
                workspace = Workspace(JsonFileWorkspacePersistence(str(self.path)))
            self.assertEqual(workspace.tabs, [])
            self.assertIsNone(workspace.active_tab_id)

    def test_list_filters_keep_json_values(self):
        payload = payload_from_dict(TabType.LIST, {'filters': {
            'types': ['suivi', 'note'],
            'page': 2,
            'showCompleted': False,
            'secteur': 'Nord',
        }})
        tab = Tab(id="list-observations", type=TabType.LIST, module=ModuleType.OBSERVATIONS,
                  title="Observations", payload=payload)

        data = serialize_state([tab], tab.id)['tabs'][0]['data']
        self.assertEqual(data, {'filters': {
            'page': 2,
            'secteur': 'Nord',
            'showCompleted': False,
            'types': ['suivi', 'note'],
        }})
        restored, _ = deserialize_state(serialize_state([tab], tab.id))
        self.assertEqual(restored[0].payload, payload)

    def test_missing_identifier_rejected(self):
        with self.assertRaises(ValueError):
            payload_from_dict(TabType.PATIENT, {})
        with self.assertRaises(ValueError):
            deserialize_state({'tabs': [{'id': 'p', 'type': 'patient', 'module': 'dossiers'}]})
        with self.assertRaises(ValueError):
            deserialize_state(["not", "an", "object"])

    def test_in_memory_slot(self):
        persistence = WorkspacePersistence()
        workspace = Workspace(persistence)
        workspace.add_tab(patient_tab(_patient("1")))

        self.assertEqual(Workspace(persistence).tabs, workspace.tabs)


class TestWorkspaceScenario(unittest.TestCase):

    def test_reopening_patient_after_new_observation_form(self):
        workspace = Workspace()
        workspace.add_tab(patient_tab(_patient("1", "DUPONT", "Jean")))
        self.assertEqual([t.id for t in workspace.tabs], ["patient-1"])
        self.assertEqual(workspace.active_tab_id, "patient-1")

        workspace.add_tab(new_tab(ModuleType.OBSERVATIONS, "Nouvelle observation", timestamp_ms=123))
        self.assertEqual([t.id for t in workspace.tabs], ["patient-1", "new-obs-123"])
        self.assertEqual(workspace.active_tab_id, "new-obs-123")

        workspace.add_tab(patient_tab(_patient("1", "DUPONT", "Jean")))
        self.assertEqual(len(workspace.tabs), 2)
        self.assertEqual(workspace.active_tab_id, "patient-1")

    def test_typical_session(self):
        workspace = Workspace()

        workspace.on_module_visible(ModuleType.DOSSIERS)
        form = workspace.add_tab(new_tab(ModuleType.DOSSIERS, "Nouveau patient", timestamp_ms=1))
        self.assertEqual(workspace.active_tab_id, form.id)

        # Patient saved: the form is replaced by the patient's card
        workspace.remove_tab(form.id)
        workspace.add_tab(patient_tab(_patient("p1")))
        workspace.add_tab(patient_tab(_patient("p2", "Martin", "Léa")))

        workspace.add_tab(patient_tab(_patient("p1")))
        self.assertEqual(workspace.active_tab_id, "patient-p1")
        self.assertEqual([t.id for t in workspace.tabs], ["list-dossiers", "patient-p1", "patient-p2"])

        workspace.remove_tab("patient-p1")
        self.assertEqual(workspace.active_tab_id, "patient-p2")

        workspace.close_other_tabs("list-dossiers")
        self.assertEqual([t.id for t in workspace.tabs], ["list-dossiers"])
        self.assertEqual(workspace.active_tab_id, "list-dossiers")


if __name__ == '__main__':
    unittest.main()
