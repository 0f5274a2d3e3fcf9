#!/usr/bin/env python3
"""
Clinic Tracker - Main Entrypoint

Command line access to the clinic tracker: global search, attendee imports,
AI summaries and the persisted tab workspace.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import AppConfig, SEARCH_RESULT_LIMIT
from .core.clinical_service import ClinicalService
from .core.data_models import ModuleType
from .core.errors import StoreError, SummaryError, ValidationError
from .core.global_search import search
from .core.module_router import route
from .core.persistence import JsonFileWorkspacePersistence
from .core.workspace import Workspace
from .reporting.audit_logger import generate_import_report
from .store.ai_client import SummaryClient
from .store.rest_client import RestStoreClient


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(asctime)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def load_config(args: argparse.Namespace) -> AppConfig:
    """Environment configuration with command line overrides applied."""
    config = AppConfig.from_env()
    if args.store_url:
        config.store_url = args.store_url
    if args.api_key:
        config.api_key = args.api_key
    if args.token:
        config.access_token = args.token
    if args.workspace_file:
        config.workspace_file = args.workspace_file
    return config


def build_service(config: AppConfig) -> ClinicalService:
    store = RestStoreClient(
        config.store_url,
        api_key=config.api_key,
        access_token=config.access_token,
        timeout=config.timeout,
        verify_ssl=config.verify_ssl,
    )
    summary_client = SummaryClient(
        config.summary_url,
        access_token=config.access_token or config.api_key,
        timeout=config.timeout,
        verify_ssl=config.verify_ssl,
    )
    workspace = Workspace(JsonFileWorkspacePersistence(config.workspace_file))
    return ClinicalService(store, workspace, summary_client=summary_client)


def cmd_search(service: ClinicalService, args: argparse.Namespace) -> int:
    results = search(
        args.query,
        patients=service.collections.get('patients'),
        observations=service.collections.get('observations'),
        consultations=service.collections.get('consultations'),
        todos=service.collections.get('todos'),
        limit=SEARCH_RESULT_LIMIT,
    )

    if results.total == 0:
        print(f"No result for '{args.query}'", file=sys.stderr)
        return 0

    for kind, items in results.categories():
        if not items:
            continue
        print(f"{kind.value.upper()} ({len(items)})")
        for item in items:
            print(f"  {item.id:<38} {_describe(item)}")
    return 0


def _describe(item) -> str:
    if hasattr(item, 'prenom'):
        return f"{item.display_name} [{item.secteur or '-'}]"
    if hasattr(item, 'titre'):
        return f"{item.date} {item.titre or 'Consultation'}"
    owner = getattr(item, 'patient', None)
    owner_name = f" ({owner.full_name})" if owner is not None else ""
    text = (item.contenu or "").replace("\n", " ")
    return f"{text[:60]}{owner_name}"


def cmd_import_names(service: ClinicalService, args: argparse.Namespace) -> int:
    names_path = Path(args.names_file)
    if not names_path.exists():
        print(f"Error: names file not found: {args.names_file}", file=sys.stderr)
        return 1

    name_text = names_path.read_text(encoding='utf-8')
    report = service.import_attendees(args.consultation_id, name_text)
    print(generate_import_report(report, service.get_import_statistics()), file=sys.stderr)
    return 0 if report.unmatched_count == 0 else 2


def cmd_summary(service: ClinicalService, args: argparse.Namespace) -> int:
    print(service.generate_summary(args.patient_id))
    return 0


def cmd_tabs(service: ClinicalService, args: argparse.Namespace) -> int:
    workspace = service.workspace
    if not workspace.tabs:
        print("No open tab", file=sys.stderr)

    for tab in workspace.tabs:
        marker = "*" if tab.id == workspace.active_tab_id else " "
        print(f"{marker} {tab.id:<40} {tab.module.value:<13} {tab.type.value:<13} {tab.title}")

    for module in ModuleType:
        decision = route(workspace, module)
        target = f" {decision.entity_id}" if decision.entity_id else ""
        print(f"{module.value}: {decision.view.value}{target}", file=sys.stderr)
    return 0


def cmd_open_patient(service: ClinicalService, args: argparse.Namespace) -> int:
    tab = service.open_patient(args.patient_id)
    print(f"Active tab: {tab.id} ({tab.title})", file=sys.stderr)
    return 0


def cmd_module(service: ClinicalService, args: argparse.Namespace) -> int:
    module = ModuleType(args.module)
    service.show_module(module)
    decision = route(service.workspace, module)
    target = f" {decision.entity_id}" if decision.entity_id else ""
    print(f"{module.value}: {decision.view.value}{target}")
    return 0


def cmd_focus(service: ClinicalService, args: argparse.Namespace) -> int:
    tab = service.activate_tab(args.tab_id)
    if tab is None:
        print(f"Error: no open tab with id {args.tab_id}", file=sys.stderr)
        return 1
    print(f"Active tab: {tab.id} ({tab.title})", file=sys.stderr)
    return 0


def cmd_complete_todo(service: ClinicalService, args: argparse.Namespace) -> int:
    if args.undo:
        todo = service.uncomplete_todo(args.todo_id)
    else:
        todo = service.complete_todo(args.todo_id)
    state = "done" if todo.completed else "open"
    print(f"Todo {todo.id}: {state}", file=sys.stderr)
    return 0


def cmd_close(service: ClinicalService, args: argparse.Namespace) -> int:
    if service.workspace.get_tab(args.tab_id) is None:
        print(f"Error: no open tab with id {args.tab_id}", file=sys.stderr)
        return 1
    service.close_tab(args.tab_id)
    return 0


def cmd_close_all(service: ClinicalService, args: argparse.Namespace) -> int:
    service.workspace.close_all_tabs()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clinic-tracker",
        description="Clinic Tracker - patient records, observations and follow-up tasks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "dupont"
  %(prog)s import-names 3f2a... attendees.txt
  %(prog)s summary 8c1d... --verbose
  %(prog)s tabs
        """
    )

    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--store-url', help='Store base URL (default: $CLINIC_TRACKER_STORE_URL)')
    parser.add_argument('--api-key', help='Store API key (default: $CLINIC_TRACKER_API_KEY)')
    parser.add_argument('--token', help='User access token (default: $CLINIC_TRACKER_ACCESS_TOKEN)')
    parser.add_argument('--workspace-file',
                        help='Workspace state file (default: $CLINIC_TRACKER_WORKSPACE_FILE)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    search_parser = subparsers.add_parser('search', help='Search patients, consultations, observations and todos')
    search_parser.add_argument('query', help='Text to search for (accents and case are ignored)')
    search_parser.set_defaults(handler=cmd_search)

    import_parser = subparsers.add_parser('import-names', help='Import an attendee list into a consultation')
    import_parser.add_argument('consultation_id', help='Consultation id')
    import_parser.add_argument('names_file', help='Text file with one name per line or comma separated')
    import_parser.set_defaults(handler=cmd_import_names)

    summary_parser = subparsers.add_parser('summary', help="Generate and store a patient's AI summary")
    summary_parser.add_argument('patient_id', help='Patient id')
    summary_parser.set_defaults(handler=cmd_summary)

    tabs_parser = subparsers.add_parser('tabs', help='Show the open tabs')
    tabs_parser.set_defaults(handler=cmd_tabs)

    open_parser = subparsers.add_parser('open-patient', help="Open or focus a patient's tab")
    open_parser.add_argument('patient_id', help='Patient id')
    open_parser.set_defaults(handler=cmd_open_patient)

    module_parser = subparsers.add_parser('module', help='Show a module and the view it routes to')
    module_parser.add_argument('module', choices=[m.value for m in ModuleType], help='Module to show')
    module_parser.set_defaults(handler=cmd_module)

    focus_parser = subparsers.add_parser('focus', help='Focus an open tab')
    focus_parser.add_argument('tab_id', help='Tab id')
    focus_parser.set_defaults(handler=cmd_focus)

    todo_parser = subparsers.add_parser('complete-todo', help='Mark a todo done (or open again with --undo)')
    todo_parser.add_argument('todo_id', help='Todo id')
    todo_parser.add_argument('--undo', action='store_true', help='Reopen a completed todo')
    todo_parser.set_defaults(handler=cmd_complete_todo)

    close_parser = subparsers.add_parser('close', help='Close a tab')
    close_parser.add_argument('tab_id', help='Tab id')
    close_parser.set_defaults(handler=cmd_close)

    close_all_parser = subparsers.add_parser('close-all', help='Close every tab')
    close_all_parser.set_defaults(handler=cmd_close_all)

    return parser


def main(argv=None):
    """Main entrypoint for the clinic tracker."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        config = load_config(args)
        service = build_service(config)
        exit_code = args.handler(service, args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (StoreError, SummaryError, ValueError, OSError) as e:
        logging.error(f"Command failed: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
