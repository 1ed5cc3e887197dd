"""Shared fixtures: fake git, ssh and ssh-keyscan executables on PATH."""

import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest

FAKE_GIT = """#!/bin/sh
echo "$@" >> "$FAKE_GIT_LOG"
case "$1" in
  clone|pull)
    if [ -n "$GIT_SSH" ]; then
      echo "$GIT_SSH" >> "$FAKE_GIT_SSH_RECORD"
    fi
    if [ -n "$FAKE_GIT_RUN_SSH" ] && [ -n "$GIT_SSH" ]; then
      "$GIT_SSH" git@example.test git-upload-pack || exit 128
    fi
    if [ -n "$FAKE_GIT_REQUIRE_HOST" ]; then
      if [ -z "$GIT_SSH" ] || [ ! -x "$GIT_SSH" ]; then
        echo "fatal: no ssh command configured" >&2
        exit 3
      fi
      if ! grep -q "^$FAKE_GIT_REQUIRE_HOST " "$HOME/.ssh/known_hosts" 2>/dev/null; then
        echo "Host key verification failed." >&2
        exit 128
      fi
    fi
    if [ -n "$FAKE_GIT_FAIL" ]; then
      echo "fatal: unable to access remote" >&2
      exit 128
    fi
    ;;
esac
case "$1" in
  clone)
    for last; do :; done
    mkdir -p "$last/.git"
    ;;
  rev-parse)
    echo 0123456789abcdef0123456789abcdef01234567
    ;;
esac
exit 0
"""

FAKE_SSH = """#!/bin/sh
for arg; do
  echo "$arg"
done >> "$FAKE_SSH_LOG"
exit 0
"""

FAKE_KEYSCAN = """#!/bin/sh
echo "$@" >> "$FAKE_KEYSCAN_LOG"
key_type=""
host=""
while [ $# -gt 0 ]; do
  case "$1" in
    -t) key_type=$2; shift; shift ;;
    -p) shift; shift ;;
    *) host=$1; shift ;;
  esac
done
if [ "$key_type" = "rsa" ]; then
  echo "$host ssh-rsa AAAAB3NzaFAKE"
fi
if [ "$key_type" = "ed25519" ]; then
  echo "$host ssh-ed25519 AAAAC3NzaFAKE"
fi
exit 0
"""


@dataclass
class FakeTools:
    """Paths used by the fake executables.

    Attributes:
        bin_dir (Path): Directory prepended to PATH.
        home (Path): The fake HOME directory.
        tmp_dir (Path): The temporary directory used for helper scripts.
        git_log (Path): One line per fake git invocation.
        keyscan_log (Path): One line per fake ssh-keyscan invocation.
        ssh_record (Path): GIT_SSH values seen by fake git.
        ssh_log (Path): One line per argument of each fake ssh invocation.
    """

    bin_dir: Path
    home: Path
    tmp_dir: Path
    git_log: Path
    keyscan_log: Path
    ssh_record: Path
    ssh_log: Path

    @property
    def known_hosts(self) -> Path:
        return self.home / ".ssh" / "known_hosts"

    def git_calls(self, verb: str) -> list[str]:
        if not self.git_log.exists():
            return []
        return [
            line for line in self.git_log.read_text().splitlines() if line.startswith(verb)
        ]


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeTools:
    """Installs fake `git`, `ssh` and `ssh-keyscan` executables and an isolated HOME."""
    bin_dir = tmp_path / "bin"
    home = tmp_path / "home"
    tmp_dir = tmp_path / "tmp"
    for d in (bin_dir, home, tmp_dir):
        d.mkdir()

    for name, content in (
        ("git", FAKE_GIT),
        ("ssh", FAKE_SSH),
        ("ssh-keyscan", FAKE_KEYSCAN),
    ):
        exe = bin_dir / name
        exe.write_text(content)
        exe.chmod(0o755)

    tools = FakeTools(
        bin_dir=bin_dir,
        home=home,
        tmp_dir=tmp_dir,
        git_log=tmp_path / "git.log",
        keyscan_log=tmp_path / "keyscan.log",
        ssh_record=tmp_path / "ssh_record.log",
        ssh_log=tmp_path / "ssh.log",
    )

    monkeypatch.setenv("PATH", f"{bin_dir}:/usr/bin:/bin")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("TMPDIR", str(tmp_dir))
    monkeypatch.setenv("FAKE_GIT_LOG", str(tools.git_log))
    monkeypatch.setenv("FAKE_KEYSCAN_LOG", str(tools.keyscan_log))
    monkeypatch.setenv("FAKE_GIT_SSH_RECORD", str(tools.ssh_record))
    monkeypatch.setenv("FAKE_SSH_LOG", str(tools.ssh_log))
    monkeypatch.delenv("FAKE_GIT_RUN_SSH", raising=False)
    monkeypatch.delenv("FAKE_GIT_REQUIRE_HOST", raising=False)
    monkeypatch.delenv("FAKE_GIT_FAIL", raising=False)
    monkeypatch.delenv("GIT_SSH", raising=False)
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_dir))
    return tools
