"""
Exception types for the IMAP shell.

Every error raised by the shell components derives from IMAPShError so the
command dispatcher can report it and keep the session running.
"""

from typing import Optional


class IMAPShError(Exception):
    """Base class for all shell errors."""


class ConnectError(IMAPShError):
    """Opening the TLS connection to the server failed."""

    def __init__(self, server: str, cause: Exception):
        self.server = server
        self.cause = cause
        super().__init__(f"Failed to connect to {server}: {cause}")


class AuthError(IMAPShError):
    """The server rejected the supplied credentials."""

    def __init__(self, username: str, message: str):
        self.username = username
        super().__init__(f"Authentication failed for {username}: {message}")


class PreconditionError(IMAPShError):
    """A command was issued before the session reached the required state."""


class SelectError(IMAPShError):
    """The server refused to select a mailbox."""

    def __init__(self, mailbox: str, message: str):
        self.mailbox = mailbox
        self.server_message = message
        super().__init__(f"Failed to select {mailbox}: {message}")


class QueryError(IMAPShError):
    """A SEARCH or SORT request could not be sent or was rejected."""

    def __init__(self, query: str, message: str):
        self.query = query
        self.server_message = message
        super().__init__(f"Query '{query}' failed: {message}")


class UnknownFlagError(IMAPShError):
    """A flag name is not part of the known flag vocabulary."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown flag: {token}")


class NotFound(IMAPShError):
    """No saved search exists for the given handle."""

    def __init__(self, handle: int):
        self.handle = handle
        super().__init__(f"No saved search {handle}")


class FlagError(IMAPShError):
    """The server rejected a STORE or EXPUNGE command."""


class DupError(IMAPShError):
    """A fetch or store failed while collapsing duplicates."""

    def __init__(self, message: str, message_id: Optional[int] = None):
        self.message_id = message_id
        super().__init__(message)


def server_message(data) -> str:
    """Decode the text portion of an imaplib response payload.

    Args:
        data: Second element of an imaplib (typ, data) tuple, or an exception

    Returns:
        Human-readable server message
    """
    if isinstance(data, Exception):
        return str(data)
    if isinstance(data, (list, tuple)):
        parts = [item for item in data if item is not None]
        if not parts:
            return ""
        data = parts[-1]
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return str(data)
