"""
Command-line client configuration.

Values come from the environment (a local ``.env`` is loaded by the CLI
entry point); command-line flags override them.

    FATCAT_API_HOST          catalog API base URL (default https://api.fatcat.wiki)
    FATCAT_API_AUTH_TOKEN    macaroon API token (optional)
    FATCAT_SEARCH_HOST       search backend base URL (default https://search.fatcat.wiki)
    FATCAT_EDITGROUP         default editgroup for create/update/edit/delete
    FATCAT_API_TIMEOUT       catalog API request timeout in seconds (default 30)
    EDITOR                   command used by ``edit``
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_API_HOST = "https://api.fatcat.wiki"
DEFAULT_SEARCH_HOST = "https://search.fatcat.wiki"
DEFAULT_API_TIMEOUT_S = 30.0


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class CliConfig:
    api_host: str = DEFAULT_API_HOST
    api_token: Optional[str] = None
    search_host: str = DEFAULT_SEARCH_HOST
    editgroup_id: Optional[str] = None
    api_timeout_s: float = DEFAULT_API_TIMEOUT_S
    editing_command: Optional[str] = None

    @classmethod
    def from_env(cls) -> "CliConfig":
        return cls(
            api_host=_env_str("FATCAT_API_HOST") or DEFAULT_API_HOST,
            api_token=_env_str("FATCAT_API_AUTH_TOKEN"),
            search_host=_env_str("FATCAT_SEARCH_HOST") or DEFAULT_SEARCH_HOST,
            editgroup_id=_env_str("FATCAT_EDITGROUP"),
            api_timeout_s=_env_float("FATCAT_API_TIMEOUT", DEFAULT_API_TIMEOUT_S),
            editing_command=_env_str("EDITOR"),
        )
