"""
SEARCH and SORT execution.

Runs queries against the selected mailbox and saves the results in the
search registry.
"""

import imaplib
from typing import List, Optional, Sequence, Tuple

from .errors import QueryError, server_message
from .registry import SearchRegistry
from .session import SessionState


DEFAULT_SORT_CHARSET = "UTF-8"


def parse_message_ids(data) -> List[int]:
    """Parse the id list of a SEARCH or SORT response.

    Args:
        data: Data part of an imaplib (typ, data) response

    Returns:
        Message sequence numbers in server order
    """
    if not data or data[0] is None:
        return []
    return [int(token) for token in data[0].split()]


def split_literal(keys: Sequence[str], charset: Optional[str]) -> Tuple[List[str], Optional[bytes]]:
    """Separate a non-ASCII search term so it can be sent as a literal.

    imaplib sends command arguments as ASCII and can only append one literal
    at the end of a command, so only the last term may carry other
    characters. Surrounding double quotes are dropped from that term.

    Args:
        keys: Search keys as typed
        charset: Charset used to encode the literal

    Returns:
        (ascii_keys, literal) where literal is None for an all-ASCII query

    Raises:
        ValueError: If the non-ASCII term can not be sent
    """
    keys = list(keys)
    if all(key.isascii() for key in keys):
        return keys, None
    if not all(key.isascii() for key in keys[:-1]):
        raise ValueError("only the last search term may contain non-ASCII characters")
    if not charset:
        raise ValueError("a charset is required for non-ASCII search terms")

    term = keys[-1]
    if len(term) >= 2 and term[0] == term[-1] == '"':
        term = term[1:-1]
    try:
        return keys[:-1], term.encode(charset)
    except (UnicodeEncodeError, LookupError) as e:
        raise ValueError(f"can not encode {term!r} as {charset}: {e}") from e


class QueryExecutor:
    """Issues queries and stores their results."""

    def __init__(self, session: SessionState, registry: SearchRegistry,
                 sort_charset: str = DEFAULT_SORT_CHARSET):
        """Initialize query executor.

        Args:
            session: Session providing the selected mailbox
            registry: Registry receiving the result sets
            sort_charset: Charset sent with SORT requests, and with SEARCH
                requests carrying a non-ASCII term
        """
        self.session = session
        self.registry = registry
        self.sort_charset = sort_charset

    def search(self, keywords: Sequence[str]) -> int:
        """Run a SEARCH and save the result.

        Args:
            keywords: IMAP search keys, e.g. ["FROM", "alice", "UNSEEN"]

        Returns:
            Handle of the saved result set

        Raises:
            PreconditionError: If no mailbox is selected
            QueryError: If the query can not be encoded or the server
                rejects it
        """
        conn = self.session.require_mailbox()
        query = " ".join(keywords)
        keys, literal = self._prepare(query, keywords)
        charset = self.sort_charset if literal is not None else None

        typ, data = self._run(conn, query, literal, conn.search, charset, *keys)
        return self.registry.add(parse_message_ids(data))

    def _prepare(self, query: str, keys: Sequence[str]) -> Tuple[List[str], Optional[bytes]]:
        try:
            return split_literal(keys, self.sort_charset)
        except ValueError as e:
            raise QueryError(query, str(e)) from e

    def _run(self, conn, query: str, literal: Optional[bytes], command, *args):
        if literal is not None:
            conn.literal = literal
        try:
            typ, data = command(*args)
        except UnicodeEncodeError as e:
            raise QueryError(query, str(e)) from e
        except imaplib.IMAP4.error as e:
            raise QueryError(query, server_message(e)) from e
        finally:
            # imaplib only clears the literal once a command is sent
            if literal is not None:
                conn.literal = None
        if typ != "OK":
            raise QueryError(query, server_message(data))
        return typ, data

    def sort(self, sort_keys: Sequence[str], search_keys: Optional[Sequence[str]] = None) -> int:
        """Run a SORT and save the result.

        Args:
            sort_keys: Sort criteria, e.g. ["REVERSE", "DATE"]
            search_keys: Search keys restricting the sorted set, default ALL

        Returns:
            Handle of the saved result set

        Raises:
            PreconditionError: If no mailbox is selected
            QueryError: If the query can not be encoded or the server
                rejects it
        """
        conn = self.session.require_mailbox()
        if not search_keys:
            search_keys = ["ALL"]
        criteria = "(" + " ".join(sort_keys) + ")"
        query = f"{criteria} {' '.join(search_keys)}"
        keys, literal = self._prepare(query, search_keys)

        typ, data = self._run(conn, query, literal, conn.sort, criteria, self.sort_charset, *keys)
        return self.registry.add(parse_message_ids(data))
