from __future__ import annotations
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from functools import partial
import os
from pathlib import Path, PurePath
from typing import Any
from .chain import PromptChain
from .scheduler import RefreshScheduler
from .styles import Painter
from .styles import StyleClass as SC
from .vcs import (
    DEFAULT_TIMEOUT,
    VcsSnapshot,
    collect_snapshot,
    find_repo_root,
    git_branch,
)

CWD_PRIORITY = 30
VCS_PRIORITY = 55
BRACKET_PRIORITY = 150


@dataclass
class CwdStage:
    """
    Discards the prompt so far and replaces it with the path to the current
    working directory
    """

    paint: Painter

    #: If set, the path is shown relative to :envvar:`HOME` where possible and
    #: truncated to be no more than this many characters long
    max_len: int | None = None

    getcwd: Callable[[], str] = os.getcwd

    def __call__(self, prompt: str) -> str:
        cwd = self.getcwd()
        if self.max_len is not None:
            cwd = cwdstr(cwd, self.max_len)
        return self.paint(cwd, SC.CWD)


@dataclass
class VcsStage:
    """
    Appends the current branch name in brackets, colored according to the
    state of the working tree:

    - red if there are merge conflicts
    - yellow if there are uncommitted changes
    - green if the working tree is clean
    - white if the state is not known yet
    """

    paint: Painter
    scheduler: RefreshScheduler
    getcwd: Callable[[], str] = os.getcwd
    branch: Callable[[str], str | None] = git_branch
    collect: Callable[..., Coroutine[Any, Any, VcsSnapshot]] = collect_snapshot
    timeout: float = DEFAULT_TIMEOUT

    def __call__(self, prompt: str) -> str | None:
        cwd = self.getcwd()
        root = find_repo_root(cwd)
        if root is None:
            return None
        self.scheduler.observe_repo(root)
        # Getting the branch name is fast, so it's done synchronously; that
        # way the branch is shown even while the status job is running.
        branch = self.branch(cwd)
        if not branch:
            return None
        snapshot = self.scheduler.poll(partial(self.collect, cwd, timeout=self.timeout))
        return prompt + " " + self.paint(f"[{branch}]", status_class(snapshot))


@dataclass
class BracketStage:
    paint: Painter
    bracket: str = " > "

    def __call__(self, prompt: str) -> str:
        return prompt + self.paint.plain(self.bracket)


def status_class(snapshot: VcsSnapshot | None) -> SC:
    if snapshot is None:
        return SC.VCS_UNKNOWN
    if snapshot.conflict:
        return SC.VCS_CONFLICT
    elif snapshot.dirty is not None:
        return SC.VCS_DIRTY if snapshot.dirty else SC.VCS_CLEAN
    else:
        return SC.VCS_UNKNOWN


def build_chain(
    paint: Painter,
    scheduler: RefreshScheduler | None = None,
    cwd_max_len: int | None = None,
    vcs: bool = True,
    vcs_timeout: float = DEFAULT_TIMEOUT,
    getcwd: Callable[[], str] = os.getcwd,
) -> PromptChain:
    chain = PromptChain()
    chain.register(CWD_PRIORITY, CwdStage(paint, max_len=cwd_max_len, getcwd=getcwd))
    if vcs and scheduler is not None:
        chain.register(
            VCS_PRIORITY,
            VcsStage(paint, scheduler, getcwd=getcwd, timeout=vcs_timeout),
        )
    chain.register(BRACKET_PRIORITY, BracketStage(paint))
    return chain


def cwdstr(cwd: str, max_len: int) -> str:
    """
    Show the path ``cwd``.  If the directory is at or under :envvar:`HOME`,
    the path will start with ``~/``.  The path will also be truncated to be no
    more than ``max_len`` characters long.
    """
    p = Path(cwd)
    try:
        p = "~" / p.relative_to(Path.home())
    except ValueError:
        pass
    return shortpath(p, max_len)


def shortpath(p: PurePath, max_len: int) -> str:
    """
    If the filepath ``p`` is too long (longer than ``max_len``), cut off
    leading components to make it fit; if that's not enough, also truncate the
    final component.  Deleted bits are replaced with ellipses.
    """
    assert len(p.parts) > 0
    if len(str(p)) > max_len:
        p = PurePath("…", *p.parts[1 + (p.parts[0] == "/") :])
        while len(str(p)) > max_len:
            if len(p.parts) > 2:
                p = PurePath("…", *p.parts[2:])
            else:
                p = PurePath("…", p.parts[1][: max_len - 3] + "…")
                assert len(str(p)) <= max_len
    return str(p)
