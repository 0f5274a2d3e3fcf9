"""
Patient Name Matcher - links free-form attendee names to patient dossiers.

Names pasted into a consultation are matched against the patient roster
with accent- and case-insensitive comparison. Strategies are tried in
priority order and the first hit wins.

Known limitation: the multi-token strategy accepts any roster entry whose
names contain every token, so very short tokens can hit unrelated longer
names. The shortest-name tie-break is the only disambiguation.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .data_models import Patient, ImportStatistics
from ..utils.normalizers import normalize_string


class NameMatchType(Enum):
    """How a free-text name was linked to a patient."""
    EXACT_FULL_NAME = "EXACT_FULL_NAME"      # "nom prenom" or "prenom nom"
    EXACT_SURNAME = "EXACT_SURNAME"          # single token equal to nom
    TOKEN_SUBSET = "TOKEN_SUBSET"            # every token inside nom or prenom
    NO_MATCH = "NO_MATCH"


@dataclass
class NameMatchResult:
    """Result of matching one free-text name."""
    query: str
    patient: Optional[Patient]
    match_type: NameMatchType
    suggestions: List[Patient] = field(default_factory=list)

    @property
    def match_found(self) -> bool:
        return self.patient is not None


@dataclass
class _RosterEntry:
    patient: Patient
    nom: str
    prenom: str

    @property
    def name_length(self) -> int:
        return len(self.patient.nom) + len(self.patient.prenom)


def _prepare(roster: Sequence[Patient]) -> List[_RosterEntry]:
    return [
        _RosterEntry(patient, normalize_string(patient.nom), normalize_string(patient.prenom))
        for patient in roster
    ]


def _tokenize(free_text: str) -> List[str]:
    return normalize_string(free_text).split()


def _match_exact_full_name(query: str, entries: List[_RosterEntry]) -> Optional[Patient]:
    for entry in entries:
        if query == f"{entry.nom} {entry.prenom}" or query == f"{entry.prenom} {entry.nom}":
            return entry.patient
    return None


def _match_exact_surname(token: str, entries: List[_RosterEntry]) -> Optional[Patient]:
    for entry in entries:
        if entry.nom == token:
            return entry.patient
    return None


def _match_token_subset(tokens: List[str], entries: List[_RosterEntry]) -> Optional[Patient]:
    candidates = [
        entry for entry in entries
        if all(token in entry.nom or token in entry.prenom for token in tokens)
    ]
    if not candidates:
        return None
    # min() keeps the first of equal lengths, so roster order breaks ties
    return min(candidates, key=lambda entry: entry.name_length).patient


def _classify(free_text: str, roster: Sequence[Patient]) -> NameMatchResult:
    tokens = _tokenize(free_text)
    query = " ".join(tokens)
    if not tokens:
        return NameMatchResult(free_text, None, NameMatchType.NO_MATCH)

    entries = _prepare(roster)

    patient = _match_exact_full_name(query, entries)
    if patient is not None:
        return NameMatchResult(free_text, patient, NameMatchType.EXACT_FULL_NAME)

    if len(tokens) == 1:
        # A lone token only matches a surname exactly; common surnames
        # would otherwise produce false positives.
        patient = _match_exact_surname(tokens[0], entries)
        if patient is not None:
            return NameMatchResult(free_text, patient, NameMatchType.EXACT_SURNAME)
        return NameMatchResult(free_text, None, NameMatchType.NO_MATCH)

    patient = _match_token_subset(tokens, entries)
    if patient is not None:
        return NameMatchResult(free_text, patient, NameMatchType.TOKEN_SUBSET)
    return NameMatchResult(free_text, None, NameMatchType.NO_MATCH)


def match_patient(free_text: str, roster: Sequence[Patient]) -> Optional[Patient]:
    """
    Find the patient a free-text name refers to.

    Args:
        free_text: Name as typed or pasted ("Marie Durand", "DURAND")
        roster: Patients to match against

    Returns:
        Matched patient, or None when no strategy succeeds
    """
    return _classify(free_text, roster).patient


def find_similar(free_text: str, roster: Sequence[Patient], limit: int = 3) -> List[Patient]:
    """
    Suggest patients for a name the strict matcher could not link.

    A patient is a candidate when any token is contained in its normalized
    nom or prenom. Candidates hitting more tokens come first, then shorter
    names; roster order breaks remaining ties.

    Args:
        free_text: Unmatched name
        roster: Patients to search
        limit: Maximum number of suggestions

    Returns:
        Up to `limit` suggested patients
    """
    tokens = _tokenize(free_text)
    if not tokens or limit <= 0:
        return []

    scored = []
    for entry in _prepare(roster):
        hits = sum(1 for token in tokens if token in entry.nom or token in entry.prenom)
        if hits:
            scored.append((-hits, entry.name_length, entry.patient))

    scored.sort(key=lambda item: (item[0], item[1]))
    return [patient for _, _, patient in scored[:limit]]


def parse_name_list(text: str) -> List[str]:
    """Split a pasted attendee list (one per line or comma separated)."""
    if not text:
        return []
    return [name.strip() for name in re.split(r'[,\n]', text) if name.strip()]


class PatientNameMatcher:
    """
    Name matcher for bulk attendee imports.

    Wraps match_patient/find_similar and keeps per-session statistics.
    """

    def __init__(self, similar_limit: int = 3):
        """
        Initialize the matcher.

        Args:
            similar_limit: Number of suggestions offered for unmatched names
        """
        self.similar_limit = similar_limit
        self.logger = logging.getLogger(__name__)
        self.session_stats = ImportStatistics()

    def match(self, free_text: str, roster: Sequence[Patient]) -> NameMatchResult:
        """Match one name, attaching suggestions when it fails."""
        self.session_stats.total_processed += 1
        result = _classify(free_text, roster)

        if result.match_found:
            self.session_stats.matched += 1
            self.logger.debug(
                f"NAME_MATCHED - '{free_text}' -> {result.patient.full_name} "
                f"(Match: {result.match_type.value})"
            )
        else:
            self.session_stats.unmatched += 1
            result.suggestions = find_similar(free_text, roster, self.similar_limit)
            self.logger.debug(
                f"NAME_UNMATCHED - '{free_text}' ({len(result.suggestions)} suggestion(s))"
            )
        return result

    def get_session_statistics(self) -> ImportStatistics:
        return self.session_stats

    def reset_session_statistics(self):
        self.session_stats = ImportStatistics()
