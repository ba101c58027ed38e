"""Package entry point for ``python -m scripted``.

WHY: Users run the editor as ``python -m scripted`` for the console shell,
``python -m scripted export x00001`` for one-shot jobs, or
``python -m scripted --gui`` for the desktop window.

HOW: Delegates to scripted.cli.main(), which handles ``--gui`` along with
the subcommands.

RULES:
- This file must exist for ``python -m scripted`` to work
- Without arguments the interactive shell starts
"""

from scripted.cli import main

if __name__ == "__main__":
    main()
