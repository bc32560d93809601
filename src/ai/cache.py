"""
Session cache of finished completions keyed by the exact (prefix, suffix) pair.
"""


class CompletionCache:
    """Maps (prefix, suffix) to the last formatted completion produced for it.

    There is no eviction: the most recent value per key wins and the cache
    lives as long as its owner, unless clear() is called.
    """

    def __init__(self):
        self._entries: dict[tuple[str, str], str] = {}

    def get(self, prefix: str, suffix: str) -> str | None:
        """Return the cached completion for this pair, or None."""
        return self._entries.get((prefix, suffix))

    def set(self, prefix: str, suffix: str, completion: str) -> None:
        """Store the completion for this pair, replacing any previous value."""
        self._entries[(prefix, suffix)] = completion

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries
