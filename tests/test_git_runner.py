"""
Tests for the git subprocess wrapper: timeouts, missing binaries and
per-invocation credentials.
"""

from __future__ import annotations

import base64
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from fork_archive.mirror.errors import ArchiveIOError
from fork_archive.mirror.git import TIMEOUT_RETURNCODE, GitRunner, error_text


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitRunner:

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_passes_timeout(self, mock_run):
        mock_run.return_value = _completed()

        GitRunner(timeout=12.5).run(Path("/repo"), "status")

        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "status"]
        assert kwargs["timeout"] == 12.5
        assert kwargs["cwd"] == "/repo"

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_timeout_becomes_failed_result(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=["git", "fetch"], timeout=5)

        result = GitRunner(timeout=5).run(Path("/repo"), "fetch", "origin")

        assert result.returncode == TIMEOUT_RETURNCODE
        assert "timed out" in result.stderr

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_missing_git_is_io_error(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(ArchiveIOError):
            GitRunner().run(Path("/repo"), "status")

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_permission_error_is_io_error(self, mock_run):
        mock_run.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(ArchiveIOError, match="Permission denied"):
            GitRunner().run(Path("/repo"), "status")

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_never_prompts(self, mock_run):
        mock_run.return_value = _completed()

        GitRunner().run(Path("/repo"), "fetch", "origin", url="https://github.com/a/b.git")

        env = mock_run.call_args.kwargs["env"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"
        assert "GIT_CONFIG_COUNT" not in env

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_token_sent_to_https_remote(self, mock_run):
        mock_run.return_value = _completed()

        GitRunner(token="ghp_secret").run(
            Path("/repo"), "fetch", "origin", url="https://github.com/a/b.git"
        )

        args, kwargs = mock_run.call_args
        env = kwargs["env"]
        assert env["GIT_CONFIG_COUNT"] == "1"
        assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
        header = env["GIT_CONFIG_VALUE_0"]
        assert header.startswith("Authorization: Basic ")
        decoded = base64.b64decode(header.split()[-1]).decode()
        assert decoded == "x-access-token:ghp_secret"
        # The token never appears on the command line
        assert not any("ghp_secret" in a for a in args[0])

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_existing_config_entries_preserved(self, mock_run, monkeypatch):
        monkeypatch.setenv("GIT_CONFIG_COUNT", "1")
        monkeypatch.setenv("GIT_CONFIG_KEY_0", "core.askPass")
        monkeypatch.setenv("GIT_CONFIG_VALUE_0", "")
        mock_run.return_value = _completed()

        GitRunner(token="ghp_secret").run(Path("/repo"), "fetch", url="https://github.com/a/b.git")

        env = mock_run.call_args.kwargs["env"]
        assert env["GIT_CONFIG_COUNT"] == "2"
        assert env["GIT_CONFIG_KEY_0"] == "core.askPass"
        assert env["GIT_CONFIG_KEY_1"] == "http.extraHeader"

    @pytest.mark.parametrize("url", [
        None,
        "/srv/git/repo",
        "git@github.com:a/b.git",
        "http://github.com/a/b.git",
        "https://example.com/x.git",
        "https://github.com.example.net/a/b.git",
    ])
    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_token_withheld(self, mock_run, url):
        mock_run.return_value = _completed()

        GitRunner(token="ghp_secret").run(Path("/repo"), "fetch", url=url)

        env = mock_run.call_args.kwargs["env"]
        assert "ghp_secret" not in " ".join(f"{k}={v}" for k, v in env.items() if k.startswith("GIT_"))
        assert "GIT_CONFIG_COUNT" not in env

    @mock.patch("fork_archive.mirror.git.subprocess.run")
    def test_output_and_check(self, mock_run):
        runner = GitRunner()

        mock_run.return_value = _completed(stdout="abc123\n")
        assert runner.output(Path("/repo"), "rev-parse", "HEAD") == "abc123"
        assert runner.check(Path("/repo"), "rev-parse", "HEAD") == "abc123\n"

        mock_run.return_value = _completed(returncode=128, stderr="fatal: bad revision\n")
        assert runner.output(Path("/repo"), "rev-parse", "nope") is None
        with pytest.raises(ArchiveIOError, match="bad revision"):
            runner.check(Path("/repo"), "rev-parse", "nope")


class TestErrorText:

    def test_prefers_stderr(self):
        assert error_text(_completed(1, stdout="out", stderr="err\n")) == "err"

    def test_falls_back_to_stdout(self):
        assert error_text(_completed(1, stdout="out\n")) == "out"

    def test_falls_back_to_exit_code(self):
        assert error_text(_completed(3)) == "git exited with code 3"


class TestTokenHosts:

    def test_configured_host_receives_token(self):
        runner = GitRunner(token="ghp_secret", token_hosts=("git.example.com",))

        env = runner._env_for("https://git.example.com/org/repo.git")

        assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"

    def test_default_host_dropped_when_not_configured(self):
        runner = GitRunner(token="ghp_secret", token_hosts=("git.example.com",))
        assert "GIT_CONFIG_COUNT" not in runner._env_for("https://github.com/a/b.git")

    def test_host_match_ignores_case_and_credentials(self):
        env = GitRunner(token="ghp_secret")._env_for("https://user@GitHub.com/a/b.git")
        assert env["GIT_CONFIG_COUNT"] == "1"
