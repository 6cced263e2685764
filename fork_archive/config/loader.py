"""
Config Loader — Load archive settings from a master key or individual env vars.

Supports two modes:
1. Master JSON key: Single FORK_ARCHIVE_CONFIG env var with all settings
2. Individual keys: ARCHIVE_ROOT, GITHUB_TOKEN, GITHUB_TOKEN_HOSTS,
   ARCHIVE_GIT_TIMEOUT (fallback)

## Usage

    # Option 1: Master config (one secret)
    export FORK_ARCHIVE_CONFIG='{"archive_root": "/srv/archive", "github_token": "ghp_xxx"}'

    # Option 2: Individual keys
    export ARCHIVE_ROOT=/srv/archive
    export GITHUB_TOKEN=ghp_xxx

The loader tries master config first, then fills gaps from individual keys.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

MASTER_ENV_VAR = "FORK_ARCHIVE_CONFIG"

DEFAULT_TOKEN_HOSTS = ("github.com",)

# setting name -> (master JSON keys, individual env var)
_SETTINGS = {
    "archive_root": (("archive_root", "ARCHIVE_ROOT"), "ARCHIVE_ROOT"),
    "github_token": (("github_token", "GITHUB_TOKEN"), "GITHUB_TOKEN"),
    "token_hosts": (("token_hosts", "GITHUB_TOKEN_HOSTS"), "GITHUB_TOKEN_HOSTS"),
    "git_timeout": (("git_timeout", "ARCHIVE_GIT_TIMEOUT"), "ARCHIVE_GIT_TIMEOUT"),
}


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class ArchiveSettings:
    """Everything the archiving engine needs at construction time."""

    archive_root: Path
    github_token: Optional[str] = None
    # Hosts whose HTTPS URLs are sent the token
    token_hosts: Tuple[str, ...] = DEFAULT_TOKEN_HOSTS
    # Seconds; None means git runs without a timeout
    git_timeout: Optional[float] = None

    def redacted(self) -> Dict[str, Any]:
        """Printable form with the token masked."""
        token = None
        if self.github_token:
            token = self.github_token[:4] + "…" if len(self.github_token) > 8 else "***"
        return {
            "archive_root": str(self.archive_root),
            "github_token": token,
            "token_hosts": list(self.token_hosts),
            "git_timeout": self.git_timeout,
        }


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid git timeout: {value!r}")
    if timeout <= 0:
        raise ConfigurationError(f"Git timeout must be positive, got {value!r}")
    return timeout


def _parse_token_hosts(value: Any) -> Tuple[str, ...]:
    if value is None or value == "":
        return DEFAULT_TOKEN_HOSTS
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"Invalid token hosts: {value!r}")
    hosts = tuple(str(h).strip().lower() for h in value if str(h).strip())
    return hosts or DEFAULT_TOKEN_HOSTS


def _parse_master_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Accept lower- or upper-case keys in the master JSON.

    Only keys that are present are returned, so a falsy value such as a
    zero timeout still reaches validation.
    """
    values: Dict[str, Any] = {}
    for name, (keys, _) in _SETTINGS.items():
        for key in keys:
            if key in data:
                values[name] = data[key]
                break
    return values


def _lookup(values: Dict[str, Any], name: str) -> Any:
    """Master config value if present, else the individual env var."""
    if name in values:
        return values[name]
    return os.environ.get(_SETTINGS[name][1])


def load_settings(archive_root: Optional[str] = None) -> ArchiveSettings:
    """
    Load settings from FORK_ARCHIVE_CONFIG, then individual env vars.

    An explicit archive_root (e.g. from the command line) wins over both.

    Raises:
        ConfigurationError: If no archive root is configured, the timeout
            is not a positive number or the token hosts are malformed
    """
    values: Dict[str, Any] = {}

    master_config = os.environ.get(MASTER_ENV_VAR)
    if master_config:
        try:
            data = json.loads(master_config)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid {MASTER_ENV_VAR} JSON: {e}")
        else:
            if isinstance(data, dict):
                values = _parse_master_config(data)
                logger.info(f"Loaded configuration from {MASTER_ENV_VAR}")
            else:
                logger.error(f"{MASTER_ENV_VAR} must be a JSON object")

    root = archive_root or _lookup(values, "archive_root")
    if not root:
        raise ConfigurationError(
            f"No archive root configured. Set ARCHIVE_ROOT or {MASTER_ENV_VAR}"
        )

    return ArchiveSettings(
        archive_root=Path(root).expanduser(),
        github_token=_lookup(values, "github_token") or None,
        token_hosts=_parse_token_hosts(_lookup(values, "token_hosts")),
        git_timeout=_parse_timeout(_lookup(values, "git_timeout")),
    )
