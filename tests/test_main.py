import io
import json
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from clinic_tracker.main import build_parser, main


class TestCommandLine(unittest.TestCase):
    """Workspace subcommands run against a temporary state file."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.workspace_file = str(Path(self.temp_dir) / "tabs.json")
        Path(self.workspace_file).write_text(json.dumps({
            'tabs': [
                {'id': 'list-dossiers', 'type': 'list', 'module': 'dossiers', 'title': 'Patients',
                 'data': {'filters': {}}},
                {'id': 'patient-p1', 'type': 'patient', 'module': 'dossiers', 'title': 'Durand Marie',
                 'data': {'patientId': 'p1'}},
            ],
            'activeTabId': 'patient-p1',
        }), encoding='utf-8')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _run(self, *argv):
        with self.assertRaises(SystemExit) as ctx:
            main(['--workspace-file', self.workspace_file] + list(argv))
        return ctx.exception.code

    def _saved(self):
        return json.loads(Path(self.workspace_file).read_text(encoding='utf-8'))

    def test_parser_requires_command(self):
        with patch('sys.stderr', new=io.StringIO()):
            with self.assertRaises(SystemExit):
                build_parser().parse_args([])

    def test_tabs(self):
        output = io.StringIO()
        with redirect_stdout(output):
            self.assertEqual(self._run('tabs'), 0)
        self.assertIn("* patient-p1", output.getvalue())

    def test_close(self):
        self.assertEqual(self._run('close', 'patient-p1'), 0)
        saved = self._saved()
        self.assertEqual([t['id'] for t in saved['tabs']], ['list-dossiers'])
        self.assertEqual(saved['activeTabId'], 'list-dossiers')

    def test_close_unknown_tab(self):
        self.assertEqual(self._run('close', 'ghost'), 1)

    def test_module_provisions_list_tab(self):
        output = io.StringIO()
        with redirect_stdout(output):
            self.assertEqual(self._run('module', 'todos'), 0)
        self.assertIn("todos: list", output.getvalue())

        saved = self._saved()
        self.assertEqual([t['id'] for t in saved['tabs']], ['list-dossiers', 'patient-p1', 'list-todos'])
        self.assertEqual(saved['activeTabId'], 'list-todos')

    def test_module_with_existing_list_tab(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(self._run('module', 'dossiers'), 0)
        self.assertEqual(self._saved()['activeTabId'], 'patient-p1')

    def test_focus(self):
        self.assertEqual(self._run('focus', 'list-dossiers'), 0)
        self.assertEqual(self._saved()['activeTabId'], 'list-dossiers')

    def test_focus_unknown_tab(self):
        self.assertEqual(self._run('focus', 'ghost'), 1)
        self.assertEqual(self._saved()['activeTabId'], 'patient-p1')

    @patch('clinic_tracker.main.RestStoreClient')
    def test_complete_todo(self, store_class):
        store = store_class.return_value
        store.update.return_value = {'id': 't1', 'contenu': 'a', 'completed': True}
        self.assertEqual(self._run('complete-todo', 't1'), 0)
        self.assertEqual(store.update.call_args[0][:2], ('todos', 't1'))

        store.update.return_value = {'id': 't1', 'contenu': 'a', 'completed': False}
        self.assertEqual(self._run('complete-todo', 't1', '--undo'), 0)
        store.update.assert_called_with('todos', 't1', {'completed': False, 'completed_at': None})

    def test_close_all(self):
        self.assertEqual(self._run('close-all'), 0)
        self.assertEqual(self._saved(), {'tabs': [], 'activeTabId': None})


if __name__ == '__main__':
    unittest.main()
