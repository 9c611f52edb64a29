"""
IMAP Shell Package

An interactive shell for searching, sorting, flagging and de-duplicating
messages in an IMAP mailbox.
"""

__version__ = "1.0.0"

from .config import ConfigManager
from .registry import SearchRegistry
from .session import SessionState
from .query import QueryExecutor
from .batch import BatchMutator
from .dedup import AdjacentKeyWalk, DuplicateCollapser
from .shell import IMAPShell

__all__ = [
    "ConfigManager",
    "SearchRegistry",
    "SessionState",
    "QueryExecutor",
    "BatchMutator",
    "AdjacentKeyWalk",
    "DuplicateCollapser",
    "IMAPShell",
]
