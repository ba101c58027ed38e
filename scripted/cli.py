"""Command-line interface for the scripted bank editor.

WHY: Users need the editor from a terminal as well as from the desktop,
and build scripts need one-shot resolve/export commands with a proper
exit status. All of them share the same presenter logic as the window.

HOW: argparse with subcommands. ``shell`` (the default) runs the
interactive BankShell. ``list``, ``resolve``, and ``export`` build a
Presenter with a ConsoleView on stderr, run one operation, and wait for
the background job. ``config`` shows or updates scripted.cfg. ``gui``
(or ``--gui``) opens the tkinter window.

RULES:
- --root selects the data directory (default: SCRIPTED_ROOT or ./banks)
- Status output goes to stderr; ``list`` and ``config`` print to stdout
- One-shot commands exit 1 with the message on stderr when they fail
- resolve/export only act on banks that exist on disk; they never create one
- -v/--verbose switches logging from INFO to DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, NoReturn, Optional

from scripted import __version__
from scripted.config import CONFIG_KEYS, Paths, default_paths, load_config, save_config, update_config
from scripted.core.context import file_name_for, normalize_name
from scripted.core.errors import ConfigError, ParseError
from scripted.presenter import Presenter
from scripted.views.console import BankShell, ConsoleView

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr and flush."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> NoReturn:
    _status("Error: {}".format(msg))
    sys.exit(1)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _make_presenter(paths: Paths, view: ConsoleView) -> Presenter:
    try:
        return Presenter(view, paths)
    except ConfigError as exc:
        _fail(str(exc))


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_shell(args: argparse.Namespace, paths: Paths) -> None:
    view = ConsoleView()
    presenter = _make_presenter(paths, view)
    BankShell(presenter, view).cmdloop()


def _cmd_gui(args: argparse.Namespace, paths: Paths) -> None:
    from scripted.gui import main as gui_main
    gui_main(paths)


def _cmd_list(args: argparse.Namespace, paths: Paths) -> None:
    view = ConsoleView(sys.stderr)
    presenter = _make_presenter(paths, view)
    for bank_id, title in presenter.workspace.bank_list():
        print("{}\t{}".format(presenter.stem(bank_id), title))


def _cmd_job(args: argparse.Namespace, paths: Paths) -> None:
    view = ConsoleView(sys.stderr)
    presenter = _make_presenter(paths, view)

    try:
        bank_id = normalize_name(presenter.config, args.bank)
    except ParseError as exc:
        _fail(str(exc))
    if bank_id not in presenter.workspace:
        _fail("No such bank: {}".format(file_name_for(presenter.config, paths, bank_id)))

    presenter.switch_or_open(args.bank)
    started = presenter.resolve() if args.command == "resolve" else presenter.export()
    if not started:
        sys.exit(1)

    result = presenter.wait_for_job()
    if result is None or not result.ok:
        sys.exit(1)
    print(result.path)


def _cmd_config(args: argparse.Namespace, paths: Paths) -> None:
    try:
        config = load_config(paths)
        if args.set:
            changes = {}
            for item in args.set:
                key, sep, value = item.partition("=")
                if not sep:
                    _fail("Expected KEY=VALUE, got {!r}".format(item))
                changes[key.strip()] = value.strip()
            config = update_config(config, **changes)
            save_config(paths, config)
            _status("Saved {}".format(paths.config_file))
    except ConfigError as exc:
        _fail(str(exc))

    for name in CONFIG_KEYS:
        print("{}={}".format(name, getattr(config, name)))


_COMMANDS = {
    "shell": _cmd_shell,
    "gui": _cmd_gui,
    "list": _cmd_list,
    "resolve": _cmd_job,
    "export": _cmd_job,
    "config": _cmd_config,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable: tests can inspect the parser without running anything.
    """
    parser = argparse.ArgumentParser(
        prog="scripted",
        description="Edit, resolve, and export register banks stored as text files.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "--root",
        default=None,
        help="Bank directory (default: $SCRIPTED_ROOT or ./banks).",
    )
    parser.add_argument(
        "--gui",
        action="store_true",
        help="Open the desktop window (same as the 'gui' command).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("shell", help="Interactive console editor (default).")
    sub.add_parser("gui", help="Desktop editor window.")
    sub.add_parser("list", help="List bank files in the directory.")

    for name, help_text in (
        ("resolve", "Write out/<id>.resolved.txt for one bank."),
        ("export", "Write out/<id>.json for one bank."),
    ):
        job = sub.add_parser(name, help=help_text)
        job.add_argument("bank", help="Bank name, e.g. x00001 or x00001.txt.")

    config = sub.add_parser("config", help="Show or change identifier settings.")
    config.add_argument(
        "--set",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Change a setting ({}); repeatable.".format(", ".join(CONFIG_KEYS)),
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m scripted`` and the ``scripted`` script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    command = "gui" if args.gui else (args.command or "shell")
    args.command = command
    paths = default_paths(args.root)
    logger.debug("Running %s in %s", command, paths.root)
    _COMMANDS[command](args, paths)


if __name__ == "__main__":
    main()
