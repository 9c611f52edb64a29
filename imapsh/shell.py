"""
Interactive command dispatcher.

Reads one command per line, routes it to the session, query, batch and
duplicate components, and reports errors without leaving the shell.
"""

import getpass
import imaplib
import shlex
from typing import Callable, Dict, List, Optional

from .batch import BatchMutator, STORE_COMMANDS
from .config import ConfigManager
from .dedup import DuplicateCollapser
from .errors import IMAPShError
from .progress import ConsoleProgress, ProgressCallback
from .query import QueryExecutor
from .registry import SearchRegistry
from .session import SessionState


USAGE = {
    "connect": "connect <server>",
    "disconnect": "disconnect",
    "login": "login",
    "select": "select <mailbox>",
    "capability": "capability",
    "search": "search <keyword> [keyword...]",
    "sort": "sort <sortkey|(sortkey...)> [searchkey...]",
    "list": "list [handle]",
    "uniq": "uniq [-n] <handle>",
    "flags": "flags add|remove <flag> [flag...] <handle>",
    "delete": "delete <handle>",
    "expunge": "expunge",
    "help": "help",
    "quit": "quit",
}


def parse_handle(token: str) -> Optional[int]:
    """Parse a handle argument, returning None if it is not an integer."""
    try:
        return int(token)
    except ValueError:
        return None


def split_sort_args(args: List[str]) -> tuple[List[str], List[str]]:
    """Split sort command arguments into sort keys and search keys.

    A parenthesized group such as "(REVERSE DATE)" supplies several sort
    keys; otherwise the first argument is the only sort key.
    """
    if not args[0].startswith("("):
        return [args[0]], args[1:]

    sort_keys = []
    for index, token in enumerate(args):
        sort_keys.append(token)
        if token.endswith(")"):
            break
    else:
        raise ValueError("unterminated sort key group")
    words = " ".join(sort_keys)[1:-1].split()
    if not words:
        raise ValueError("empty sort key group")
    return words, args[index + 1:]


class IMAPShell:
    """Line-oriented IMAP shell."""

    def __init__(self, config_manager: ConfigManager,
                 session: Optional[SessionState] = None,
                 input_func: Callable[[str], str] = input,
                 password_func: Callable[[str], str] = getpass.getpass,
                 callback: Optional[ProgressCallback] = None):
        """Initialize the shell and its components.

        Args:
            config_manager: Loaded configuration
            session: Session to drive; a new one is created if omitted
            input_func: Function reading a line after showing a prompt
            password_func: Function reading a password without echo
            callback: Progress callback for duplicate scans
        """
        settings = config_manager.get_shell_settings()
        self.config_manager = config_manager
        self.verbose = config_manager.is_verbose()
        self.input_func = input_func
        self.password_func = password_func

        self.session = session or SessionState(port=config_manager.get_port())
        self.registry = SearchRegistry()
        self.queries = QueryExecutor(self.session, self.registry, settings["sort_charset"])
        self.mutator = BatchMutator(self.session, self.registry,
                                    config_manager.get_batch_size(), self.verbose)
        self.collapser = DuplicateCollapser(
            self.session,
            self.registry,
            config_manager.get_batch_size(),
            config_manager.get_dedup_mode(),
            settings["dedup_header"],
            callback or ConsoleProgress(self.verbose),
        )

        self.commands: Dict[str, Callable[[List[str]], None]] = {
            "connect": self.do_connect,
            "disconnect": self.do_disconnect,
            "login": self.do_login,
            "select": self.do_select,
            "capability": self.do_capability,
            "search": self.do_search,
            "sort": self.do_sort,
            "list": self.do_list,
            "uniq": self.do_uniq,
            "flags": self.do_flags,
            "delete": self.do_delete,
            "expunge": self.do_expunge,
            "help": self.do_help,
        }

    def prompt(self) -> str:
        return self.session.prompt_string() + "> "

    def run(self) -> int:
        """Read and execute commands until quit or end of input.

        Returns:
            Process exit code
        """
        while True:
            try:
                line = self.input_func(self.prompt())
            except EOFError:
                print("\nGood bye!")
                break
            if not self.handle_line(line):
                print("Good bye!")
                break

        self.session.disconnect()
        return 0

    def handle_line(self, line: str) -> bool:
        """Execute one command line.

        Returns:
            False if the shell should exit, True otherwise
        """
        try:
            words = shlex.split(line, posix=False)
        except ValueError as e:
            print(f"[!] Could not parse command: {e}")
            return True
        if not words:
            return True

        name, args = words[0].lower(), words[1:]
        if name == "quit":
            return False

        handler = self.commands.get(name)
        if handler is None:
            print(f"[!] Unknown command: {words[0]}")
            return True

        try:
            handler(args)
        except IMAPShError as e:
            print(f"[!] {e}")
        except (imaplib.IMAP4.error, OSError) as e:
            print(f"[!] IMAP error: {e}")
        return True

    def usage(self, name: str) -> None:
        print(f"Usage: {USAGE[name]}")

    def do_connect(self, args: List[str]) -> None:
        if len(args) != 1:
            self.usage("connect")
            return
        self.session.connect(args[0])
        if self.verbose:
            print(f"[i] Connected to {args[0]}")

    def do_disconnect(self, args: List[str]) -> None:
        self.session.disconnect()

    def do_login(self, args: List[str]) -> None:
        self.session.require_connection()
        env_user, env_pass = self.config_manager.get_credentials()

        def password_provider() -> str:
            if env_pass:
                return env_pass
            return self.password_func("Password: ")

        label = f"Username [{env_user}]: " if env_user else "Username: "
        try:
            username = self.input_func(label).strip() or env_user
            if not username:
                print("[!] No username given")
                return
            self.session.login(username, password_provider)
        except EOFError:
            # session.login clears the user before asking for the password
            print("\n[!] Login cancelled")
            return

        if self.verbose:
            print(f"[i] Logged in as {username}")

    def do_select(self, args: List[str]) -> None:
        if len(args) != 1:
            self.usage("select")
            return
        self.session.select(args[0])

    def do_capability(self, args: List[str]) -> None:
        print(" ".join(self.session.capabilities()))

    def do_search(self, args: List[str]) -> None:
        if not args:
            self.usage("search")
            return
        self._report_handle(self.queries.search(args))

    def do_sort(self, args: List[str]) -> None:
        if not args:
            self.usage("sort")
            return
        try:
            sort_keys, search_keys = split_sort_args(args)
        except ValueError:
            self.usage("sort")
            return
        self._report_handle(self.queries.sort(sort_keys, search_keys or None))

    def _report_handle(self, handle: int) -> None:
        print(f"[{handle}] {len(self.registry.get(handle))} message(s)")

    def do_list(self, args: List[str]) -> None:
        if len(args) > 1:
            self.usage("list")
            return
        if args:
            handle = parse_handle(args[0])
            if handle is None:
                self.usage("list")
                return
            ids = self.registry.describe(handle)
            print(" ".join(str(msg_id) for msg_id in ids) if ids else "(empty)")
            return

        entries = self.registry.list()
        if not entries:
            print("[i] No saved searches")
        for handle, size in entries:
            print(f"  {handle}: {size} message(s)")

    def do_uniq(self, args: List[str]) -> None:
        mode = None
        if args and args[0] == "-n":
            mode = "report"
            args = args[1:]
        handle = parse_handle(args[0]) if len(args) == 1 else None
        if handle is None:
            self.usage("uniq")
            return

        duplicates = self.collapser.collapse(handle, mode)
        action = "reported" if (mode or self.collapser.mode) == "report" else "marked deleted"
        print(f"[i] {len(duplicates)} duplicate(s) {action}")

    def do_flags(self, args: List[str]) -> None:
        if len(args) < 2 or args[0].lower() not in STORE_COMMANDS:
            self.usage("flags")
            return
        handle = parse_handle(args[-1])
        if handle is None:
            self.usage("flags")
            return

        flag_names = args[1:-1]
        stored = self.mutator.set_flags(handle, args[0].lower(), flag_names)
        if not flag_names:
            print("[i] No flags given, nothing to do")
        elif self.verbose:
            print(f"[i] Updated {stored} message(s)")

    def do_delete(self, args: List[str]) -> None:
        handle = parse_handle(args[0]) if len(args) == 1 else None
        if handle is None:
            self.usage("delete")
            return
        self.registry.delete(handle)

    def do_expunge(self, args: List[str]) -> None:
        count = self.mutator.expunge()
        if self.verbose:
            print(f"[i] Expunged {count} message(s)")

    def do_help(self, args: List[str]) -> None:
        for name in USAGE:
            print(f"  {USAGE[name]}")
