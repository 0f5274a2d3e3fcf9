import unittest

from clinic_tracker.core.data_models import ModuleType, TabType, Tab, Patient, Consultation, PatientPayload
from clinic_tracker.core.module_router import ViewKind, route
from clinic_tracker.core.workspace import Workspace, list_tab, patient_tab, consultation_tab, new_tab


class TestRoute(unittest.TestCase):
    """Test cases for the module router."""

    def setUp(self):
        self.workspace = Workspace()

    def test_no_active_tab_shows_list(self):
        decision = route(self.workspace, ModuleType.DOSSIERS)
        self.assertEqual(decision.view, ViewKind.LIST)
        self.assertIsNone(decision.tab)

    def test_active_tab_of_other_module_shows_list(self):
        self.workspace.add_tab(consultation_tab(Consultation(id="c1", date="2024-01-01")))
        decision = route(self.workspace, ModuleType.DOSSIERS)
        self.assertEqual(decision.view, ViewKind.LIST)

    def test_dangling_active_id_shows_list(self):
        self.workspace.add_tab(patient_tab(Patient(id="p1", nom="A", prenom="B")))
        self.workspace.set_active_tab("ghost")
        self.assertEqual(route(self.workspace, ModuleType.DOSSIERS).view, ViewKind.LIST)

    def test_patient_detail(self):
        self.workspace.add_tab(patient_tab(Patient(id="p1", nom="A", prenom="B")))
        decision = route(self.workspace, ModuleType.DOSSIERS)
        self.assertEqual(decision.view, ViewKind.PATIENT_DETAIL)
        self.assertEqual(decision.entity_id, "p1")

    def test_consultation_detail(self):
        self.workspace.add_tab(consultation_tab(Consultation(id="c1", date="2024-01-01")))
        decision = route(self.workspace, ModuleType.OBSERVATIONS)
        self.assertEqual(decision.view, ViewKind.CONSULTATION_DETAIL)
        self.assertEqual(decision.entity_id, "c1")

    def test_new_tab_shows_create_form(self):
        tab = self.workspace.add_tab(new_tab(ModuleType.TODOS, "Nouvelle tâche", patient_id="p1"))
        decision = route(self.workspace, ModuleType.TODOS)
        self.assertEqual(decision.view, ViewKind.CREATE_FORM)
        self.assertIs(decision.tab, tab)

    def test_list_tab_shows_list(self):
        tab = self.workspace.add_tab(list_tab(ModuleType.OBSERVATIONS))
        decision = route(self.workspace, ModuleType.OBSERVATIONS)
        self.assertEqual(decision.view, ViewKind.LIST)
        self.assertIs(decision.tab, tab)

    def test_detail_tab_without_identifier_falls_back_to_list(self):
        tab = Tab(id="patient-", type=TabType.PATIENT, module=ModuleType.DOSSIERS,
                  title="?", payload=PatientPayload(patient_id=""))
        self.workspace.add_tab(tab)
        decision = route(self.workspace, ModuleType.DOSSIERS)
        self.assertEqual(decision.view, ViewKind.LIST)
        self.assertIsNone(decision.entity_id)


if __name__ == '__main__':
    unittest.main()
