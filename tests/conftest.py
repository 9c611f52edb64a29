"""
Shared fixtures and an in-memory IMAP connection for the shell tests.
"""

import imaplib
from typing import Dict, List, Optional

import pytest

from imapsh.config import ConfigManager
from imapsh.registry import SearchRegistry
from imapsh.session import SessionState


class FakeIMAP:
    """Mimics the imaplib.IMAP4_SSL calls used by the shell.

    Responses follow imaplib conventions: (typ, data) tuples, NO answers
    returned as typ "NO", BAD answers raised as IMAP4.error.
    """

    def __init__(self, host: str = "imap.example.com", port: int = 993,
                 password: str = "secret",
                 mailboxes: Optional[Dict[str, int]] = None,
                 message_ids: Optional[Dict[int, Optional[str]]] = None):
        self.host = host
        self.port = port
        self.password = password
        # Keyed by the wire name, as sent in modified UTF-7
        self.mailboxes = mailboxes if mailboxes is not None else \
            {"INBOX": 3, "Archive": 0, "Entw&APw-rfe": 1}
        self.message_ids = message_ids or {}
        self.results: Dict[str, List[int]] = {}
        self.bad_queries = set()
        self.store_status = "OK"
        self.fetch_status = "OK"
        self.literal = None

        self.select_calls = []
        self.search_calls = []
        self.search_charsets = []
        self.literals = []
        self.sort_calls = []
        self.fetch_calls: List[int] = []
        self.store_calls = []
        self.expunge_calls = 0
        self.logged_out = False

    @property
    def transport_calls(self) -> int:
        return len(self.search_calls) + len(self.sort_calls) + len(self.fetch_calls) + \
            len(self.store_calls) + self.expunge_calls

    def login_cram_md5(self, user, password):
        if password != self.password:
            raise imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Authentication failed.")
        return "OK", [b"CRAM-MD5 authentication successful"]

    def _send(self, *args) -> Optional[bytes]:
        """Encode arguments the way imaplib does and take the pending literal."""
        for arg in args:
            if isinstance(arg, str):
                arg.encode("ascii")
        literal, self.literal = self.literal, None
        self.literals.append(literal)
        return literal

    def select(self, mailbox="INBOX", readonly=False):
        self._send(mailbox)
        if isinstance(mailbox, bytes):
            mailbox = mailbox.decode("ascii")
        self.select_calls.append(mailbox)
        if mailbox not in self.mailboxes:
            return "NO", [f"[NONEXISTENT] Unknown Mailbox: {mailbox}".encode()]
        return "OK", [str(self.mailboxes[mailbox]).encode()]

    def capability(self):
        return "OK", [b"IMAP4rev1 SORT UIDPLUS AUTH=CRAM-MD5"]

    def _answer(self, query, ids):
        if query in self.bad_queries:
            raise imaplib.IMAP4.error("SEARCH command error: BAD [b'Invalid search criteria']")
        return "OK", [" ".join(str(i) for i in ids).encode()]

    @staticmethod
    def _query(words, literal, charset) -> str:
        words = list(words)
        if literal is not None:
            words.append(literal.decode(charset or "ascii"))
        return " ".join(words)

    def search(self, charset, *criteria):
        literal = self._send(charset, *criteria)
        self.search_calls.append(criteria)
        self.search_charsets.append(charset)
        query = self._query(criteria, literal, charset)
        return self._answer(query, self.results.get(query, [1, 2, 3]))

    def sort(self, sort_criteria, charset, *search_criteria):
        literal = self._send(sort_criteria, charset, *search_criteria)
        self.sort_calls.append((sort_criteria, charset, search_criteria))
        query = self._query((sort_criteria,) + search_criteria, literal, charset)
        return self._answer(query, self.results.get(query, [3, 2, 1]))

    def fetch(self, message_set, message_parts):
        msg_id = int(message_set)
        self.fetch_calls.append(msg_id)
        if self.fetch_status != "OK":
            return self.fetch_status, [b"Message has been deleted"]
        value = self.message_ids.get(msg_id)
        header = f"Message-ID: {value}\r\n\r\n".encode() if value else b"\r\n"
        envelope = f"{msg_id} (BODY[HEADER.FIELDS (MESSAGE-ID)] {{{len(header)}}}".encode()
        return "OK", [(envelope, header), b")"]

    def store(self, message_set, command, flags):
        self.store_calls.append((message_set, command, flags))
        if self.store_status != "OK":
            return self.store_status, [b"STORE failed"]
        return "OK", [None]

    def stored_ids(self) -> List[List[int]]:
        """Message ids of every STORE call, one list per call."""
        return [[int(i) for i in message_set.split(",")] for message_set, _, _ in self.store_calls]

    def expunge(self):
        self.expunge_calls += 1
        return "OK", [b"2", b"2"]

    def logout(self):
        self.logged_out = True
        return "BYE", [b"LOGOUT received"]


@pytest.fixture
def fake_imap():
    return FakeIMAP()


@pytest.fixture
def session(fake_imap):
    return SessionState(connection_factory=lambda host, port: fake_imap)


@pytest.fixture
def selected_session(session):
    session.connect("imap.example.com")
    session.login("alice", lambda: "secret")
    session.select("INBOX")
    return session


@pytest.fixture
def registry():
    return SearchRegistry()


@pytest.fixture
def config_manager():
    return ConfigManager("nonexistent.json", "nonexistent_local.json")
