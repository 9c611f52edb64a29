#!/usr/bin/env python3
"""
Basic usage example for the IMAP shell components.

Reports adjacent duplicates among newsletter messages without the
interactive shell. Requires IMAP_USER/IMAP_PASS in the environment.
"""

import sys

from imapsh import ConfigManager, DuplicateCollapser, QueryExecutor, SearchRegistry, SessionState
from imapsh.progress import ConsoleProgress


def main():
    """Basic usage example."""
    if len(sys.argv) != 2:
        print("Usage: basic_usage.py <server>")
        return 2

    config_manager = ConfigManager()
    username, password = config_manager.get_credentials()
    if not username or not password:
        print("[!] Set IMAP_USER and IMAP_PASS first")
        return 1

    session = SessionState(port=config_manager.get_port())
    registry = SearchRegistry()

    session.connect(sys.argv[1])
    try:
        session.login(username, lambda: password)
        session.select("INBOX")

        # Sorting by subject puts copies of the same message next to each other
        queries = QueryExecutor(session, registry)
        handle = queries.sort(["SUBJECT"], ["FROM", "newsletter"])
        print(f"Saved search {handle}: {len(registry.get(handle))} message(s)")

        collapser = DuplicateCollapser(session, registry, mode="report",
                                       callback=ConsoleProgress())
        duplicates = collapser.collapse(handle)
        print(f"\nDuplicates found: {len(duplicates)}")
    finally:
        session.disconnect()

    return 0


if __name__ == "__main__":
    sys.exit(main())
