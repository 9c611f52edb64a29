"""
Command Line Interface for the IMAP shell.

Provides the CLI entry point for the interactive shell.
"""

import sys
from typing import List, Optional

from . import __version__
from .config import ConfigManager
from .errors import ConnectError
from .shell import IMAPShell


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the IMAP shell.

    Args:
        argv: Command line arguments; an optional server to connect to

    Returns:
        Process exit code
    """
    argv = sys.argv[1:] if argv is None else argv
    try:
        print(f"IMAP Shell v{__version__}")
        print("Type 'help' for a list of commands.")

        config_manager = ConfigManager()
        shell = IMAPShell(config_manager)

        server = argv[0] if argv else config_manager.get_mail_settings()["default_server"]
        if server:
            try:
                shell.session.connect(server)
            except ConnectError as e:
                print(f"[!] {e}")
                return 1

        return shell.run()

    except KeyboardInterrupt:
        print("\n[!] Interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
