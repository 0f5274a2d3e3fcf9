"""
Audit logging and reporting for attendee imports.

Provides structured log lines for each name decision and a text report
of an import session.
"""

import logging
from datetime import datetime
from typing import List

from ..core.data_models import ImportReport, ImportStatistics
from ..core.patient_matcher import NameMatchResult


class ImportAuditLogger:
    """Structured logging of attendee import decisions."""

    def __init__(self, logger_name: str = "clinic_tracker.imports"):
        """
        Initialize the audit logger.

        Args:
            logger_name: Name for the logger instance
        """
        self.logger = logging.getLogger(logger_name)
        self.session_start_time = datetime.now()

    def log_match_decision(self, result: NameMatchResult, consultation_id: str = "") -> None:
        """Log how one attendee name was resolved."""
        if not result.match_found:
            suggestions = ", ".join(p.full_name for p in result.suggestions) or "none"
            self.logger.warning(
                f"IMPORT_UNMATCHED - Consultation {consultation_id} - '{result.query}' "
                f"- Suggestions: {suggestions}"
            )
            return

        self.logger.info(
            f"IMPORT_MATCHED - Consultation {consultation_id} - '{result.query}' "
            f"-> {result.patient.full_name} (Match: {result.match_type.value})"
        )

    def log_session_summary(self, stats: ImportStatistics) -> None:
        session_duration = datetime.now() - self.session_start_time

        self.logger.info(f"IMPORT_SESSION_COMPLETE - Duration: {session_duration}")
        self.logger.info(f"TOTAL_PROCESSED: {stats.total_processed}")
        self.logger.info(f"MATCHED: {stats.matched}")
        self.logger.info(f"UNMATCHED: {stats.unmatched}")


def generate_import_report(report: ImportReport, stats: ImportStatistics) -> str:
    """
    Generate a text report of an attendee import.

    Args:
        report: Created observations and unmatched names
        stats: Matcher statistics for the session

    Returns:
        Formatted report
    """
    report_lines: List[str] = [
        "=" * 70,
        "ATTENDEE IMPORT REPORT",
        "=" * 70,
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Consultation: {report.consultation_id}",
        "",
        f"  Names processed: {stats.total_processed:,}",
        f"  Observations created: {report.created_count:,}",
        f"  Patients not found: {report.unmatched_count:,}",
        f"  Match rate: {stats.get_match_rate():.1%}",
        "",
    ]

    if report.unmatched:
        report_lines.extend([
            f"UNMATCHED NAMES ({report.unmatched_count} items):",
            "-" * 50,
        ])
        for i, (name, suggestions) in enumerate(report.unmatched, 1):
            hint = ", ".join(p.display_name for p in suggestions) if suggestions else "no suggestion"
            report_lines.append(f"{i:2d}. {name:<30} | {hint}")
        report_lines.append("")

    report_lines.append("=" * 70)
    return "\n".join(report_lines)
