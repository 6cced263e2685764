"""
Git Runner — Thin wrapper around the git executable.

Every engine step talks to git through GitRunner so that the timeout and
the per-invocation credentials are applied in one place. Results are plain
subprocess.CompletedProcess objects; callers decide what a non-zero exit
code means for their step.
"""

from __future__ import annotations

import base64
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

from ..config.loader import DEFAULT_TOKEN_HOSTS
from .errors import ArchiveIOError

logger = logging.getLogger(__name__)

# Exit code reported when git did not finish within the configured timeout
TIMEOUT_RETURNCODE = -1


def _git(
    cwd: Optional[Path],
    *args: str,
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a git command and capture its output."""
    cmd = ["git"] + list(args)
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(
            args=cmd,
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=f"git {args[0] if args else ''} timed out after {timeout}s",
        )
    except OSError as e:
        # Missing or unexecutable git binary, missing or unreadable cwd
        raise ArchiveIOError(f"Cannot run git in {cwd}: {e}", cwd) from e


def error_text(result: subprocess.CompletedProcess) -> str:
    """Best human-readable failure text of a git result."""
    return (result.stderr or "").strip() or (result.stdout or "").strip() or (
        f"git exited with code {result.returncode}"
    )


@dataclass(frozen=True)
class GitRunner:
    """Runs git with the archive's timeout and optional GitHub token."""

    timeout: Optional[float] = None
    token: Optional[str] = None
    token_hosts: Tuple[str, ...] = DEFAULT_TOKEN_HOSTS

    def run(self, cwd: Optional[Path], *args: str, url: Optional[str] = None) -> subprocess.CompletedProcess:
        """
        Run git in cwd.

        Pass url for commands that talk to a remote; the token is only
        offered to HTTPS URLs on token_hosts, and only through the
        environment of this one process.
        """
        logger.debug(f"[git] git {' '.join(args)} (cwd={cwd})")
        return _git(cwd, *args, timeout=self.timeout, env=self._env_for(url))

    def output(self, cwd: Path, *args: str) -> Optional[str]:
        """Run a local git command and return stripped stdout, or None on failure."""
        result = self.run(cwd, *args)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def check(self, cwd: Path, *args: str) -> str:
        """Run a local git command; any failure is an ArchiveIOError."""
        result = self.run(cwd, *args)
        if result.returncode != 0:
            raise ArchiveIOError(
                f"git {' '.join(args)} failed in {cwd}: {error_text(result)}", cwd
            )
        return result.stdout

    def _env_for(self, url: Optional[str]) -> Dict[str, str]:
        env = dict(os.environ)
        # Never block on an interactive credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self.token and url and self._accepts_token(url):
            basic = base64.b64encode(f"x-access-token:{self.token}".encode()).decode()
            count = int(env.get("GIT_CONFIG_COUNT", "0") or "0")
            env["GIT_CONFIG_COUNT"] = str(count + 1)
            env[f"GIT_CONFIG_KEY_{count}"] = "http.extraHeader"
            env[f"GIT_CONFIG_VALUE_{count}"] = f"Authorization: Basic {basic}"
        return env

    def _accepts_token(self, url: str) -> bool:
        parts = urlsplit(url)
        return parts.scheme == "https" and (parts.hostname or "").lower() in self.token_hosts
