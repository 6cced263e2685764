"""
Shared fixtures for archive engine tests.

Builds throwaway git repositories under tmp_path: an upstream with a
"master" branch and a contributor fork with "master" and "feature".
Git runs with an isolated HOME so user configuration cannot leak in.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from fork_archive.config.loader import ArchiveSettings
from fork_archive.mirror.manager import ArchivingEngine
from fork_archive.models.repository import ForkRepository, SourceRepository

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return stripped stdout (raises on failure)."""
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(path: Path) -> Path:
    """Create an empty repository whose unborn branch is master."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/master")
    return path


def commit(repo: Path, filename: str, content: str = "", message: str = "") -> str:
    """Write a file, commit it, return the new HEAD."""
    (repo / filename).write_text(content or f"{filename}\n")
    git(repo, "add", filename)
    git(repo, "commit", "-q", "-m", message or f"Add {filename}")
    return git(repo, "rev-parse", "HEAD")


def refs(repo: Path, prefix: str = "refs/") -> dict:
    """{refname: sha} under prefix."""
    out = git(repo, "for-each-ref", "--format=%(objectname) %(refname)", prefix)
    result = {}
    for line in out.splitlines():
        sha, _, name = line.partition(" ")
        result[name] = sha
    return result


def remotes(repo: Path) -> dict:
    """{remote name: url}"""
    names = git(repo, "remote").split()
    return {name: git(repo, "remote", "get-url", name) for name in names}


@pytest.fixture(autouse=True)
def git_env(monkeypatch, tmp_path: Path):
    """Isolate git and archive configuration from the host."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Archive Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "archive@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Archive Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "archive@example.com")
    for var in (
        "XDG_CONFIG_HOME",
        "GIT_DIR",
        "GIT_WORK_TREE",
        "GIT_CONFIG_COUNT",
        "GIT_CONFIG_GLOBAL",
        "ARCHIVE_ROOT",
        "GITHUB_TOKEN",
        "GITHUB_TOKEN_HOSTS",
        "ARCHIVE_GIT_TIMEOUT",
        "FORK_ARCHIVE_CONFIG",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def upstream_dir(tmp_path: Path) -> Path:
    """Upstream repository with one commit on master."""
    repo = init_repo(tmp_path / "sourceRepository")
    commit(repo, "readme.txt", message="Initial commit")
    return repo


@pytest.fixture
def fork_dir(tmp_path: Path, upstream_dir: Path) -> Path:
    """Fork of the upstream with master and a feature branch of its own."""
    repo = tmp_path / "forkedRepository"
    git(tmp_path, "clone", "-q", str(upstream_dir), str(repo))
    git(repo, "checkout", "-q", "-b", "feature")
    commit(repo, "feature.txt", message="Feature work")
    git(repo, "checkout", "-q", "master")
    return repo


@pytest.fixture
def archive_root(tmp_path: Path) -> Path:
    return tmp_path / "archive"


@pytest.fixture
def source(upstream_dir: Path) -> SourceRepository:
    return SourceRepository(organization="testorg", name="testrepo", clone_url=str(upstream_dir))


@pytest.fixture
def fork(fork_dir: Path, source: SourceRepository) -> ForkRepository:
    return ForkRepository(owner="TomasHofman", clone_url=str(fork_dir), name="testrepo", source=source)


@pytest.fixture
def engine(archive_root: Path) -> ArchivingEngine:
    return ArchivingEngine(ArchiveSettings(archive_root=archive_root))


@pytest.fixture
def archive_dir(archive_root: Path) -> Path:
    """Where the testorg/testrepo archive lives."""
    return archive_root / "testorg" / "testrepo"
