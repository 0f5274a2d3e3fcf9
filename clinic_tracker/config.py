"""
Configuration for the clinic tracker.

Defaults live here as module constants; deployment values come from the
environment and can be overridden by command line flags.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# Store defaults
DEFAULT_STORE_URL = "http://localhost:54321"
DEFAULT_SUMMARY_URL = "http://localhost:3000/api/ai/summary"
DEFAULT_TIMEOUT = 30

# Workspace persistence slot
DEFAULT_WORKSPACE_FILE = str(Path.home() / ".clinic_tracker" / "tabs-storage.json")

# Search and matching limits
SEARCH_RESULT_LIMIT = 5
SIMILAR_LIMIT = 3
SUMMARY_OBSERVATION_LIMIT = 50

ENV_PREFIX = "CLINIC_TRACKER_"


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class AppConfig:
    """Runtime configuration for store access and workspace persistence."""
    store_url: str = DEFAULT_STORE_URL
    api_key: str = ""
    access_token: str = ""
    summary_url: str = DEFAULT_SUMMARY_URL
    workspace_file: str = DEFAULT_WORKSPACE_FILE
    verify_ssl: bool = True
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'AppConfig':
        """
        Build configuration from CLINIC_TRACKER_* environment variables.

        Args:
            environ: Mapping to read from (os.environ when omitted)

        Returns:
            AppConfig with defaults for unset variables
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name) or default

        timeout_raw = get('TIMEOUT', str(DEFAULT_TIMEOUT))
        try:
            timeout = int(timeout_raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}TIMEOUT must be an integer, got '{timeout_raw}'")

        return cls(
            store_url=get('STORE_URL', DEFAULT_STORE_URL),
            api_key=get('API_KEY', ""),
            access_token=get('ACCESS_TOKEN', ""),
            summary_url=get('SUMMARY_URL', DEFAULT_SUMMARY_URL),
            workspace_file=get('WORKSPACE_FILE', DEFAULT_WORKSPACE_FILE),
            verify_ssl=_env_flag(env.get(ENV_PREFIX + 'VERIFY_SSL'), True),
            timeout=timeout,
        )
