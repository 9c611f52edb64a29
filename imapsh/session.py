"""
IMAP session state.

Tracks the live connection, the authenticated user and the selected mailbox,
and derives the shell prompt from them.
"""

import imaplib
from typing import Callable, List, Optional

from imapclient.imap_utf7 import encode as encode_utf7

from .errors import (
    AuthError,
    ConnectError,
    PreconditionError,
    SelectError,
    server_message,
)


IMAPS_PORT = 993


class SessionState:
    """Connection state of the shell.

    The session moves through disconnected -> connected -> authenticated ->
    mailbox-selected. A failed step only clears the state it owns and what
    depends on it.
    """

    def __init__(self, port: int = IMAPS_PORT,
                 connection_factory: Callable[[str, int], imaplib.IMAP4] = imaplib.IMAP4_SSL):
        """Initialize an empty, disconnected session.

        Args:
            port: Port used for new connections
            connection_factory: Callable taking (host, port) and returning an
                IMAP connection
        """
        self.port = port
        self.connection_factory = connection_factory
        self.connection: Optional[imaplib.IMAP4] = None
        self.server: Optional[str] = None
        self.username: Optional[str] = None
        self.mailbox: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.connection is not None

    def connect(self, server: str) -> None:
        """Open a TLS connection to an IMAP server.

        Any existing connection is closed first.

        Args:
            server: Hostname of the IMAP server

        Raises:
            ConnectError: If the connection could not be established
        """
        self.disconnect()
        try:
            conn = self.connection_factory(server, self.port)
        except (OSError, imaplib.IMAP4.error) as e:
            raise ConnectError(server, e) from e

        self.connection = conn
        self.server = server

    def disconnect(self) -> None:
        """Close the connection, if any, and reset all session state."""
        if self.connection is not None:
            try:
                self.connection.logout()
            except (imaplib.IMAP4.error, OSError):
                # The connection is discarded either way
                pass
        self.connection = None
        self.server = None
        self.username = None
        self.mailbox = None

    def login(self, username: str, password_provider: Callable[[], str]) -> None:
        """Authenticate with CRAM-MD5.

        Args:
            username: Account name
            password_provider: Callable returning the password; only invoked
                once the session is known to be connected

        Raises:
            PreconditionError: If not connected
            AuthError: If the server rejects the credentials
        """
        conn = self.require_connection()
        self.username = None
        self.mailbox = None

        password = password_provider()
        try:
            typ, data = conn.login_cram_md5(username, password)
        except imaplib.IMAP4.error as e:
            raise AuthError(username, server_message(e)) from e
        if typ != "OK":
            raise AuthError(username, server_message(data))

        self.username = username

    def select(self, mailbox: str) -> None:
        """Select a mailbox for subsequent queries.

        A failed select leaves no mailbox selected; the previous one is not
        restored. The name is sent in IMAP modified UTF-7 and kept as typed
        for the prompt.

        Raises:
            PreconditionError: If not logged in
            SelectError: If the server refuses the mailbox
        """
        self.mailbox = None
        if self.username is None:
            raise PreconditionError("Must login first")
        conn = self.require_connection()

        try:
            typ, data = conn.select(encode_utf7(mailbox))
        except imaplib.IMAP4.error as e:
            raise SelectError(mailbox, server_message(e)) from e
        if typ != "OK":
            raise SelectError(mailbox, server_message(data))

        self.mailbox = mailbox

    def require_connection(self) -> imaplib.IMAP4:
        """Return the live connection or raise PreconditionError."""
        if self.connection is None:
            raise PreconditionError("Not connected")
        return self.connection

    def require_mailbox(self) -> imaplib.IMAP4:
        """Return the live connection once a mailbox is selected."""
        conn = self.require_connection()
        if self.mailbox is None:
            raise PreconditionError("No mailbox selected")
        return conn

    def capabilities(self) -> List[str]:
        """Get the capability atoms advertised by the server."""
        conn = self.require_connection()
        typ, data = conn.capability()
        if typ != "OK" or not data or data[0] is None:
            return []
        return data[0].decode().split()

    def prompt_string(self) -> str:
        """Build the prompt shown before each command.

        Returns:
            "" when disconnected, "user@server" style otherwise, with
            ":mailbox" appended once a mailbox is selected
        """
        if self.server is None:
            return ""
        user = f"{self.username}@" if self.username is not None else ""
        if self.mailbox is None:
            return f"{user}{self.server}"
        return f"{user}{self.server}:{self.mailbox}"
