"""
Saved search registry.

Stores the result of every query under a small integer handle so later
commands can refer to it.
"""

from typing import Dict, Iterable, List, Tuple

from .errors import NotFound


class SearchRegistry:
    """Table of saved result sets keyed by handle.

    Handles come from a counter that starts at 1 and only ever grows, so a
    handle is never handed out twice during a session, even after it has
    been deleted.
    """

    def __init__(self):
        self.sequence_counter = 1
        self._entries: Dict[int, Tuple[int, ...]] = {}

    def add(self, result: Iterable[int]) -> int:
        """Store a result set and return its new handle.

        Args:
            result: Ordered message identifiers

        Returns:
            Handle for the stored result set
        """
        handle = self.sequence_counter
        self._entries[handle] = tuple(result)
        self.sequence_counter += 1
        return handle

    def get(self, handle: int) -> Tuple[int, ...]:
        """Get the result set for a handle.

        Raises:
            NotFound: If no entry exists for the handle
        """
        try:
            return self._entries[handle]
        except KeyError:
            raise NotFound(handle) from None

    def exists(self, handle: int) -> bool:
        return handle in self._entries

    def delete(self, handle: int) -> None:
        """Remove a saved result set.

        Raises:
            NotFound: If no entry exists for the handle
        """
        if handle not in self._entries:
            raise NotFound(handle)
        del self._entries[handle]

    def list(self) -> List[Tuple[int, int]]:
        """Summarize the registry.

        Returns:
            List of (handle, size) tuples in insertion order
        """
        return [(handle, len(result)) for handle, result in self._entries.items()]

    def describe(self, handle: int) -> List[int]:
        """Get a copy of the full contents of a saved result set."""
        return list(self.get(handle))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: int) -> bool:
        return self.exists(handle)
