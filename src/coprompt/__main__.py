from __future__ import annotations
import argparse
import logging
from . import __version__
from .shell import PromptHost, run_repl
from .styles import THEMES, ANSIStyler, BashStyler, Painter, ZshStyler


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Git-aware shell prompt built from staged prompt filters"
    )
    parser.add_argument(
        "--ansi",
        action="store_const",
        dest="stylecls",
        const=ANSIStyler,
        help="Format prompt for direct display",
    )
    parser.add_argument(
        "--bash",
        action="store_const",
        dest="stylecls",
        const=BashStyler,
        help="Format prompt for Bash's PS1 (default)",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Set logging level on stderr  [default: WARNING]",
    )
    parser.add_argument(
        "--max-cwd-len",
        type=int,
        metavar="N",
        help="Shorten the working directory to at most N characters",
    )
    parser.add_argument(
        "--repl",
        action="store_true",
        help="Run an interactive shell using the prompt",
    )
    parser.add_argument(
        "-T",
        "--theme",
        choices=list(THEMES.keys()),
        default="dark",
        help="Select the color theme to use  [default: dark]",
    )
    parser.add_argument(
        "--vcs-timeout",
        type=float,
        metavar="SECONDS",
        default=3,
        help="Give up on Git status checks that take longer than this  [default: 3]",
    )
    parser.add_argument(
        "--zsh",
        action="store_const",
        dest="stylecls",
        const=ZshStyler,
        help="Format prompt for zsh's PS1",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "vcs_flag", nargs="?", help='Set to "off" to disable Git integration'
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, args.log_level),
    )
    if args.repl:
        styler = (args.stylecls or ANSIStyler)()
    else:
        styler = (args.stylecls or BashStyler)()
    paint = Painter(styler=styler, theme=THEMES[args.theme])
    with PromptHost(
        paint,
        vcs=args.vcs_flag != "off",
        cwd_max_len=args.max_cwd_len,
        vcs_timeout=args.vcs_timeout,
    ) as host:
        if args.repl:
            run_repl(host)
            return
        host.new_line()
        s = host.render()
        if host.scheduler.pending is not None and host.settle(2 * args.vcs_timeout):
            s = host.render()
    print(s)


if __name__ == "__main__":
    main()
