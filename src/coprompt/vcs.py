from __future__ import annotations
import asyncio
from collections.abc import Awaitable
from contextlib import suppress
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import subprocess

log = logging.getLogger(__name__)

#: Name of the directory that marks the root of a repository
REPO_MARKER = ".git"

#: Default maximum number of seconds to let a single Git command run
DEFAULT_TIMEOUT = 3.0

StrPath = str | os.PathLike[str]


@dataclass(frozen=True)
class VcsSnapshot:
    #: `True` iff the working tree has uncommitted changes, or `None` if this
    #: could not be determined
    dirty: bool | None = None

    #: `True` iff any paths have merge conflicts, or `None` if this could not
    #: be determined
    conflict: bool | None = None


def find_repo_root(start: StrPath, marker: str = REPO_MARKER) -> Path | None:
    """
    Return the nearest directory at or above ``start`` that contains a
    ``marker`` directory, or `None` if the filesystem root is reached without
    finding one
    """
    d = Path(start).absolute()
    for p in (d, *d.parents):
        try:
            if (p / marker).is_dir():
                return p
        except OSError:
            return None
    return None


def git(
    *args: str, cwd: StrPath | None = None, timeout: float = DEFAULT_TIMEOUT
) -> str | None:
    """
    Run a Git command (suppressing stderr) and return the first line of its
    stdout without the line terminator.  If Git is not installed, the command
    fails or times out, or there is no output, return `None`.
    """
    try:
        r = subprocess.run(
            ["git", *args],
            cwd=cwd,
            check=True,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
        log.debug("`git %s` failed: %s", " ".join(args), e)
        return None
    lines = r.stdout.splitlines()
    return lines[0] if lines else None


def git_branch(
    cwd: StrPath | None = None, timeout: float = DEFAULT_TIMEOUT
) -> str | None:
    """Return the name of the current branch, if any"""
    return git("branch", "--show-current", cwd=cwd, timeout=timeout)


async def git_has_output(*args: str, cwd: StrPath | None = None) -> bool | None:
    """
    Run a Git command as an asyncio subprocess and report whether it printed
    at least one line.  Only the first line is read; if the command is still
    running after that, it is killed.

    Returns `None` if Git could not be run or failed without printing
    anything.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        log.debug("Could not run `git %s`: %s", " ".join(args), e)
        return None
    # Always set, since stdout=PIPE
    assert proc.stdout is not None
    line = b""
    try:
        line = await proc.stdout.readline()
    finally:
        # Don't wait for the rest of the output once we know there is some
        if (line or not proc.stdout.at_eof()) and proc.returncode is None:
            with suppress(ProcessLookupError):
                proc.kill()
        # Drain whatever is left in the pipe so the process can be reaped
        await proc.communicate()
    if line:
        return True
    elif proc.returncode == 0:
        return False
    else:
        log.debug("`git %s` exited with status %s", " ".join(args), proc.returncode)
        return None


async def _bounded(aw: Awaitable[bool | None], timeout: float) -> bool | None:
    try:
        return await asyncio.wait_for(aw, timeout)
    except asyncio.TimeoutError:
        log.debug("Git command timed out after %s seconds", timeout)
        return None


async def collect_snapshot(
    cwd: StrPath | None = None, timeout: float = DEFAULT_TIMEOUT
) -> VcsSnapshot:
    """
    Determine whether the working tree at ``cwd`` is dirty and whether it has
    merge conflicts.  Each check that cannot be completed within ``timeout``
    seconds is reported as `None`.
    """
    dirty = await _bounded(
        git_has_output("--no-optional-locks", "status", "--porcelain", cwd=cwd),
        timeout,
    )
    conflict = await _bounded(
        git_has_output("diff", "--name-only", "--diff-filter=U", cwd=cwd),
        timeout,
    )
    return VcsSnapshot(dirty=dirty, conflict=conflict)
