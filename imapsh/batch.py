"""
Batch flag operations.

Applies flag changes to saved result sets in chunks small enough for the
server to accept, and expunges deleted messages.
"""

import imaplib
from typing import Iterable, List, Sequence

from .errors import FlagError, UnknownFlagError, server_message
from .registry import SearchRegistry
from .session import SessionState


MAX_BATCH_SIZE = 100

FLAG_NAMES = {
    "seen": r"\Seen",
    "answered": r"\Answered",
    "flagged": r"\Flagged",
    "deleted": r"\Deleted",
    "draft": r"\Draft",
}

STORE_COMMANDS = {
    "add": "+FLAGS",
    "remove": "-FLAGS",
}


def resolve_flags(flag_names: Iterable[str]) -> List[str]:
    """Translate user flag names to IMAP system flags.

    Args:
        flag_names: Case-insensitive names such as "seen" or "Deleted"

    Returns:
        IMAP flags in the order given, without repeats

    Raises:
        UnknownFlagError: On the first name that is not a known flag
    """
    flags = []
    for name in flag_names:
        flag = FLAG_NAMES.get(name.lstrip("\\").lower())
        if flag is None:
            raise UnknownFlagError(name)
        if flag not in flags:
            flags.append(flag)
    return flags


def chunk(ids: Sequence[int], size: int) -> List[List[int]]:
    """Split ids into consecutive chunks of at most size items."""
    return [list(ids[i:i + size]) for i in range(0, len(ids), size)]


def make_message_set(ids: Iterable[int]) -> str:
    """Build a comma separated IMAP message set."""
    return ",".join(str(msg_id) for msg_id in ids)


def store_flags(conn: imaplib.IMAP4, ids: Sequence[int], command: str,
                flags: Sequence[str], batch_size: int = MAX_BATCH_SIZE,
                verbose: bool = False) -> int:
    """Issue one STORE per chunk of ids.

    Args:
        conn: Connection with a mailbox selected
        ids: Message sequence numbers in order
        command: "+FLAGS" or "-FLAGS"
        flags: IMAP flags applied together
        batch_size: Maximum number of ids per STORE
        verbose: Whether to print per-batch progress

    Returns:
        Number of messages stored

    Raises:
        FlagError: If the server rejects a STORE
    """
    flag_list = "(" + " ".join(flags) + ")"
    batches = chunk(ids, batch_size)
    stored = 0

    for batch_num, batch in enumerate(batches, 1):
        if verbose and len(batches) > 1:
            print(f"[i] Batch {batch_num}/{len(batches)}: {command} {flag_list} on {len(batch)} messages")
        try:
            typ, data = conn.store(make_message_set(batch), command, flag_list)
        except imaplib.IMAP4.error as e:
            raise FlagError(f"STORE failed on batch {batch_num}/{len(batches)}: {server_message(e)}") from e
        if typ != "OK":
            raise FlagError(f"STORE failed on batch {batch_num}/{len(batches)}: {server_message(data)}")
        stored += len(batch)

    return stored


class BatchMutator:
    """Applies flag changes and deletions to saved result sets."""

    def __init__(self, session: SessionState, registry: SearchRegistry,
                 batch_size: int = MAX_BATCH_SIZE, verbose: bool = True):
        """Initialize batch mutator.

        Args:
            session: Session providing the selected mailbox
            registry: Registry holding the result sets
            batch_size: Maximum number of ids per STORE
            verbose: Whether to print per-batch progress
        """
        self.session = session
        self.registry = registry
        self.batch_size = batch_size
        self.verbose = verbose

    def set_flags(self, handle: int, operation: str, flag_names: Iterable[str]) -> int:
        """Add or remove flags on every message of a saved result set.

        The handle is consumed once all batches have been stored. An empty
        flag list leaves the handle in place and sends nothing.

        Args:
            handle: Registry handle
            operation: "add" or "remove"
            flag_names: Flag names, matched case-insensitively

        Returns:
            Number of messages updated

        Raises:
            NotFound: If the handle does not exist
            UnknownFlagError: If a flag name is not recognised
            PreconditionError: If no mailbox is selected
            FlagError: If the server rejects a STORE
        """
        command = STORE_COMMANDS.get(operation)
        if command is None:
            raise ValueError(f"operation must be 'add' or 'remove', got {operation!r}")

        ids = self.registry.get(handle)
        flag_names = list(flag_names)
        if not flag_names:
            return 0
        flags = resolve_flags(flag_names)
        conn = self.session.require_mailbox()

        stored = store_flags(conn, ids, command, flags, self.batch_size, self.verbose)
        self.registry.delete(handle)
        return stored

    def expunge(self) -> int:
        """Permanently remove messages flagged as deleted in the mailbox.

        Returns:
            Number of messages the server reported as expunged

        Raises:
            PreconditionError: If no mailbox is selected
            FlagError: If the server rejects the EXPUNGE
        """
        conn = self.session.require_mailbox()
        try:
            typ, data = conn.expunge()
        except imaplib.IMAP4.error as e:
            raise FlagError(f"EXPUNGE failed: {server_message(e)}") from e
        if typ != "OK":
            raise FlagError(f"EXPUNGE failed: {server_message(data)}")
        return len([item for item in data if item is not None])
