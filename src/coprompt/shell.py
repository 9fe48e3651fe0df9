from __future__ import annotations
import asyncio
import logging
import os
import shlex
import subprocess
import sys
from typing import TextIO
from .chain import PromptChain
from .scheduler import RefreshScheduler
from .stages import build_chain
from .styles import Painter
from .vcs import DEFAULT_TIMEOUT

log = logging.getLogger(__name__)


class PromptHost:
    """
    Ties a prompt chain to an asyncio event loop on which the chain's
    background jobs are run.  The host calls `new_line()` whenever a new input
    line begins and `render()` whenever the prompt needs to be drawn; between
    the two, it is expected to run the event loop (e.g., while waiting for
    input).
    """

    def __init__(
        self,
        paint: Painter,
        loop: asyncio.AbstractEventLoop | None = None,
        vcs: bool = True,
        cwd_max_len: int | None = None,
        vcs_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_loop = loop is None
        self.loop = asyncio.new_event_loop() if loop is None else loop
        self.scheduler = RefreshScheduler(self.loop)
        self.chain: PromptChain = build_chain(
            paint,
            self.scheduler,
            cwd_max_len=cwd_max_len,
            vcs=vcs,
            vcs_timeout=vcs_timeout,
        )

    def new_line(self) -> None:
        self.scheduler.new_cycle()

    def render(self) -> str:
        return self.chain.render()

    def settle(self, timeout: float | None = None) -> bool:
        """
        Run the event loop until the current background job (if any) finishes
        or ``timeout`` seconds elapse.  Returns `True` iff no job is left
        running.
        """
        task = self.scheduler.pending
        if task is None:
            return True
        done, _ = self.loop.run_until_complete(asyncio.wait({task}, timeout=timeout))
        return bool(done)

    def close(self) -> None:
        if (task := self.scheduler.pending) is not None and not task.done():
            task.cancel()
            self.loop.run_until_complete(asyncio.gather(task, return_exceptions=True))
        if self._owns_loop:
            self.loop.run_until_complete(self.loop.shutdown_asyncgens())
            self.loop.close()

    def __enter__(self) -> PromptHost:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


class LineReader:
    """
    Reads lines from a file descriptor by running an event loop until input is
    available, so that other tasks on the loop progress in the meantime
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, fd: int) -> None:
        self.loop = loop
        self.fd = fd
        self.buf = b""
        self.eof = False

    def readline(self) -> str | None:
        """Return the next line without its terminator, or `None` at EOF"""
        while b"\n" not in self.buf and not self.eof:
            fut: asyncio.Future[bytes] = self.loop.create_future()

            def on_readable() -> None:
                if not fut.done():
                    fut.set_result(os.read(self.fd, 4096))

            self.loop.add_reader(self.fd, on_readable)
            try:
                data = self.loop.run_until_complete(fut)
            finally:
                self.loop.remove_reader(self.fd)
            if data:
                self.buf += data
            else:
                self.eof = True
        if not self.buf:
            return None
        line, _, self.buf = self.buf.partition(b"\n")
        return line.decode("utf-8", "replace").rstrip("\r")


def run_repl(
    host: PromptHost, stdin: TextIO | None = None, stdout: TextIO | None = None
) -> None:
    """
    Run a minimal interactive shell that displays the host's prompt.  Lines
    are passed to the system shell, except for ``cd`` (handled in-process) and
    ``exit``.
    """
    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout

    def redraw() -> None:
        # The redrawn prompt only differs from the old one in its colors, so
        # anything the user has typed so far stays where it is.
        stdout.write("\r" + host.render())
        stdout.flush()

    host.scheduler.on_ready = redraw
    reader = LineReader(host.loop, stdin.fileno())
    while True:
        host.new_line()
        stdout.write(host.render())
        stdout.flush()
        line = reader.readline()
        if line is None:
            stdout.write("\n")
            break
        cmd = line.strip()
        if not cmd:
            continue
        elif cmd == "exit":
            break
        elif cmd == "cd" or cmd.startswith("cd "):
            chdir(cmd[2:].strip())
        else:
            stdout.flush()
            subprocess.run(cmd, shell=True)
    host.scheduler.on_ready = None


def chdir(arg: str) -> None:
    try:
        args = shlex.split(arg)
    except ValueError as e:
        print(f"cd: {e}", file=sys.stderr)
        return
    target = os.path.expanduser(args[0] if args else "~")
    try:
        os.chdir(target)
    except OSError as e:
        print(f"cd: {target}: {e.strerror}", file=sys.stderr)
    else:
        log.debug("Changed directory to %s", os.getcwd())
