"""
Executable module for depi.

Running:
    python -m depi

is equivalent to:
    depi
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entrypoint when executing `python -m depi`.

    Returns:
        Exit code returned by the CLI.
    """
    from depi.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
