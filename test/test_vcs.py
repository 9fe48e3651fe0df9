from __future__ import annotations
import asyncio
from pathlib import Path
import subprocess
import sys
from typing import Any
import pytest
from coprompt import vcs
from coprompt.vcs import (
    VcsSnapshot,
    collect_snapshot,
    find_repo_root,
    git,
    git_has_output,
)

MARKER = ".coprompt-test-repo"


def test_find_repo_root_at_start(tmp_path: Path) -> None:
    (tmp_path / MARKER).mkdir()
    assert find_repo_root(tmp_path, MARKER) == tmp_path


def test_find_repo_root_in_ancestor(tmp_path: Path) -> None:
    (tmp_path / MARKER).mkdir()
    start = tmp_path / "src" / "pkg"
    start.mkdir(parents=True)
    assert find_repo_root(start, MARKER) == tmp_path
    assert find_repo_root(str(start), MARKER) == tmp_path


def test_find_repo_root_nearest(tmp_path: Path) -> None:
    (tmp_path / MARKER).mkdir()
    inner = tmp_path / "vendor" / "lib"
    (inner / MARKER).mkdir(parents=True)
    start = inner / "src"
    start.mkdir()
    assert find_repo_root(start, MARKER) == inner


def test_find_repo_root_none(tmp_path: Path) -> None:
    start = tmp_path / "a" / "b"
    start.mkdir(parents=True)
    assert find_repo_root(start, MARKER) is None


def test_find_repo_root_marker_must_be_dir(tmp_path: Path) -> None:
    (tmp_path / MARKER).write_text("gitdir: elsewhere\n")
    assert find_repo_root(tmp_path, MARKER) is None


def test_find_repo_root_nonexistent_start(tmp_path: Path) -> None:
    (tmp_path / MARKER).mkdir()
    assert find_repo_root(tmp_path / "gone" / "away", MARKER) == tmp_path


def fake_run(stdout: str | None = None, exc: Exception | None = None) -> Any:
    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        assert cmd[0] == "git"
        assert kwargs["stderr"] == subprocess.DEVNULL
        if exc is not None:
            raise exc
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout)

    return run


@pytest.mark.parametrize(
    "stdout,result",
    [
        ("main\n", "main"),
        ("feature/foo\nsomething else\n", "feature/foo"),
        ("no-newline", "no-newline"),
        ("", None),
        ("\n", ""),
    ],
)
def test_git_first_line(
    monkeypatch: pytest.MonkeyPatch, stdout: str, result: str | None
) -> None:
    monkeypatch.setattr(subprocess, "run", fake_run(stdout=stdout))
    assert git("branch", "--show-current") == result


@pytest.mark.parametrize(
    "exc",
    [
        FileNotFoundError(2, "No such file or directory", "git"),
        PermissionError(13, "Permission denied", "git"),
        subprocess.CalledProcessError(128, ["git", "branch"]),
        subprocess.TimeoutExpired(["git", "branch"], 3),
    ],
)
def test_git_failure(monkeypatch: pytest.MonkeyPatch, exc: Exception) -> None:
    monkeypatch.setattr(subprocess, "run", fake_run(exc=exc))
    assert git("branch", "--show-current") is None


def test_git_branch(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls.append((cmd, kwargs["cwd"]))
        return subprocess.CompletedProcess(cmd, 0, stdout="main\n")

    monkeypatch.setattr(subprocess, "run", run)
    assert vcs.git_branch(tmp_path) == "main"
    assert calls == [(["git", "branch", "--show-current"], tmp_path)]


def python_instead_of_git(monkeypatch: pytest.MonkeyPatch, script: str) -> None:
    real_exec = asyncio.create_subprocess_exec

    async def create(program: str, *args: str, **kwargs: Any) -> Any:
        assert program == "git"
        return await real_exec(sys.executable, "-c", script, **kwargs)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", create)


@pytest.mark.parametrize(
    "script,result",
    [
        pytest.param("print(' M src/foo.py')", True, id="one-line"),
        pytest.param(
            "import sys, time\n"
            "print('UU a.txt', flush=True)\n"
            "time.sleep(30)\n",
            True,
            id="stops-after-first-line",
        ),
        pytest.param("pass", False, id="no-output"),
        pytest.param("import sys; sys.exit(128)", None, id="failure"),
        pytest.param(
            "import sys; print('?? x'); sys.exit(1)", True, id="failure-with-output"
        ),
    ],
)
def test_git_has_output(
    monkeypatch: pytest.MonkeyPatch, script: str, result: bool | None
) -> None:
    python_instead_of_git(monkeypatch, script)
    assert asyncio.run(git_has_output("status", "--porcelain")) is result


def test_git_has_output_not_installed(monkeypatch: pytest.MonkeyPatch) -> None:
    async def create(*args: Any, **kwargs: Any) -> Any:
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", create)
    assert asyncio.run(git_has_output("status", "--porcelain")) is None


def fake_git_checks(
    monkeypatch: pytest.MonkeyPatch,
    status: bool | None,
    conflict: bool | None,
    delay: float = 0,
) -> list[tuple[str, ...]]:
    calls: list[tuple[str, ...]] = []

    async def has_output(*args: str, cwd: Any = None) -> bool | None:
        calls.append(args)
        if "status" in args:
            await asyncio.sleep(delay)
            return status
        else:
            return conflict

    monkeypatch.setattr(vcs, "git_has_output", has_output)
    return calls


@pytest.mark.parametrize(
    "status,conflict",
    [
        (False, False),
        (True, False),
        (True, True),
        (None, None),
    ],
)
def test_collect_snapshot(
    monkeypatch: pytest.MonkeyPatch, status: bool | None, conflict: bool | None
) -> None:
    calls = fake_git_checks(monkeypatch, status, conflict)
    assert asyncio.run(collect_snapshot()) == VcsSnapshot(
        dirty=status, conflict=conflict
    )
    assert calls == [
        ("--no-optional-locks", "status", "--porcelain"),
        ("diff", "--name-only", "--diff-filter=U"),
    ]


def test_collect_snapshot_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_git_checks(monkeypatch, True, False, delay=10)
    assert asyncio.run(collect_snapshot(timeout=0.05)) == VcsSnapshot(
        dirty=None, conflict=False
    )
