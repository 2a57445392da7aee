"""Map origin identities (logins, tracker names) to display names."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ


class AuthorMap:
    """Total, case-insensitive lookup from raw identity to display name.

    Resolution order:

    1. An exact key match, ignoring case.
    2. The first entry, in configuration order, where the identity contains
       the key or the key contains the identity, ignoring case.
    3. The raw identity unchanged.

    Blank identities are returned unchanged; callers substitute their own
    placeholder (``unknown``, ``Unassigned``) before rendering.

    Examples
    --------
    >>> authors = AuthorMap({"octocat": "Mona", "jdoe": "Jane"})
    >>> authors.display_name("OctoCat")
    'Mona'
    >>> authors.display_name("jdoe-bot")
    'Jane'
    >>> authors.display_name("stranger")
    'stranger'

    """

    __slots__ = ("_entries", "_exact")

    def __init__(self, mapping: cabc.Mapping[str, str] | None = None) -> None:
        """Store the mapping, dropping entries with blank keys."""
        entries = [
            (key.strip(), value)
            for key, value in (mapping or {}).items()
            if key and key.strip()
        ]
        self._entries: tuple[tuple[str, str], ...] = tuple(entries)
        self._exact: dict[str, str] = {}
        for key, value in entries:
            self._exact.setdefault(key.casefold(), value)

    def __len__(self) -> int:
        """Return the number of configured entries."""
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        """Compare by configured entries."""
        if not isinstance(other, AuthorMap):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"AuthorMap({dict(self._entries)!r})"

    def items(self) -> tuple[tuple[str, str], ...]:
        """Return configured ``(identity, display name)`` pairs in order."""
        return self._entries

    def display_name(self, identity: str) -> str:
        """Return the display name for ``identity``."""
        needle = identity.strip().casefold()
        if not needle:
            return identity

        exact = self._exact.get(needle)
        if exact is not None:
            return exact

        for key, value in self._entries:
            folded = key.casefold()
            if folded in needle or needle in folded:
                return value

        return identity

    __call__ = display_name

    def merged(self, other: AuthorMap) -> AuthorMap:
        """Return a map consulting this map's entries before ``other``'s."""
        combined: dict[str, str] = dict(self._entries)
        for key, value in other.items():
            combined.setdefault(key, value)
        return AuthorMap(combined)

    def describe(self, separator: str = ", ") -> str:
        """Return ``identity → name`` pairs for inclusion in prompts."""
        return separator.join(f"{key} → {value}" for key, value in self._entries)


EMPTY_AUTHOR_MAP: typ.Final = AuthorMap()


__all__ = ["EMPTY_AUTHOR_MAP", "AuthorMap"]
