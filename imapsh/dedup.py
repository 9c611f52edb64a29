"""
Adjacent duplicate detection.

Walks a saved result set in order, compares a header-derived key of each
message with the next one, and marks or reports the earlier message of every
equal pair. Only adjacent duplicates are found, so the result set should be
sorted by the key first when exhaustive de-duplication is wanted.
"""

import email
import imaplib
from typing import Callable, List, Optional

from .batch import MAX_BATCH_SIZE, store_flags
from .errors import DupError, FlagError, server_message
from .progress import ProgressCallback
from .registry import SearchRegistry
from .session import SessionState


DEFAULT_KEY_HEADER = "Message-ID"

_NO_KEY = object()


def fetch_header_key(conn: imaplib.IMAP4, msg_id: int, header: str = DEFAULT_KEY_HEADER) -> Optional[str]:
    """Fetch one header of a message without setting \\Seen.

    Args:
        conn: Connection with a mailbox selected
        msg_id: Message sequence number
        header: Header name used as the key

    Returns:
        Stripped header value, or None if the message has no such header

    Raises:
        DupError: If the server rejects the FETCH
    """
    try:
        typ, msg_data = conn.fetch(str(msg_id), f"(BODY.PEEK[HEADER.FIELDS ({header.upper()})])")
    except imaplib.IMAP4.error as e:
        raise DupError(f"FETCH of message {msg_id} failed: {server_message(e)}", msg_id) from e
    if typ != "OK":
        raise DupError(f"FETCH of message {msg_id} failed: {server_message(msg_data)}", msg_id)

    for part in msg_data or []:
        if isinstance(part, tuple) and len(part) > 1:
            msg = email.message_from_bytes(part[1])
            value = (msg.get(header) or "").strip()
            return value or None
    return None


class AdjacentKeyWalk:
    """One-ahead key cache for walking adjacent pairs.

    The walk holds either no key or the key of the current message. The
    current key is only fetched when none is held; the key of the next
    message always becomes the current key for the following pair, so each
    message is fetched at most once.
    """

    def __init__(self, fetch_key: Callable[[int], Optional[str]]):
        self.fetch_key = fetch_key
        self.current_key = _NO_KEY
        self.fetch_count = 0

    def _fetch(self, msg_id: int) -> Optional[str]:
        self.fetch_count += 1
        return self.fetch_key(msg_id)

    def same_as_next(self, current_id: int, next_id: int) -> bool:
        """Compare the keys of two adjacent messages and advance.

        Messages without a key never compare equal.
        """
        if self.current_key is _NO_KEY:
            self.current_key = self._fetch(current_id)
        next_key = self._fetch(next_id)
        same = next_key is not None and self.current_key == next_key
        self.current_key = next_key
        return same

    def reset(self) -> None:
        self.current_key = _NO_KEY


class DuplicateCollapser:
    """Marks or reports adjacent duplicates of a saved result set."""

    def __init__(self, session: SessionState, registry: SearchRegistry,
                 batch_size: int = MAX_BATCH_SIZE, mode: str = "delete",
                 key_header: str = DEFAULT_KEY_HEADER,
                 callback: Optional[ProgressCallback] = None):
        """Initialize duplicate collapser.

        Args:
            session: Session providing the selected mailbox
            registry: Registry holding the result sets
            batch_size: Maximum number of ids per deletion STORE
            mode: "delete" to flag duplicates \\Deleted, "report" to only list them
            key_header: Header compared between adjacent messages
            callback: Optional callback for progress updates
        """
        self.session = session
        self.registry = registry
        self.batch_size = batch_size
        self.mode = mode
        self.key_header = key_header
        self.callback = callback or ProgressCallback()

    def collapse(self, handle: int, mode: Optional[str] = None) -> List[int]:
        """Find adjacent duplicates in a saved result set.

        The handle is deleted once the walk completes.

        Args:
            handle: Registry handle
            mode: Overrides the configured mode for this run

        Returns:
            Ids of the messages found to duplicate their successor

        Raises:
            NotFound: If the handle does not exist
            PreconditionError: If no mailbox is selected
            DupError: If a FETCH or STORE fails; the handle is kept
        """
        mode = mode or self.mode
        ids = self.registry.get(handle)
        if len(ids) < 2:
            self.registry.delete(handle)
            return []

        conn = self.session.require_mailbox()
        walk = AdjacentKeyWalk(lambda msg_id: fetch_header_key(conn, msg_id, self.key_header))
        total_pairs = len(ids) - 1
        duplicates = []
        pending = []
        last_percent = 0

        self.callback.on_start("Comparing messages", total_pairs)

        for i in range(total_pairs):
            if walk.same_as_next(ids[i], ids[i + 1]):
                duplicates.append(ids[i])
                if mode == "report":
                    print(f"[i] duplicate {ids[i]} {walk.current_key}")
                else:
                    pending.append(ids[i])
                    if len(pending) >= self.batch_size:
                        self._mark_deleted(conn, pending)
                        pending = []

            percent = (i + 1) * 100 // total_pairs
            if percent > last_percent:
                last_percent = percent
                self.callback.on_progress(i + 1, total_pairs, "Compared messages")

        if pending:
            self._mark_deleted(conn, pending)

        self.callback.on_complete("Duplicate scan", len(duplicates))
        self.registry.delete(handle)
        return duplicates

    def _mark_deleted(self, conn: imaplib.IMAP4, ids: List[int]) -> None:
        try:
            store_flags(conn, ids, "+FLAGS", [r"\Deleted"], self.batch_size)
        except FlagError as e:
            raise DupError(str(e)) from e
