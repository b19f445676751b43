"""Tag lookup cache and tag-set update planning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from powermap.domain.model import Tag

log = logging.getLogger(__name__)


def lookup_key(name: str) -> str:
    return name.lower().replace("-", " ")


@dataclass(frozen=True, slots=True)
class TagUpdateActions:
    """How to move a record's tags from ``server_ids`` to ``client_ids``."""

    add: frozenset[int]
    remove: frozenset[int]
    ignore: frozenset[int]


def parse_update_actions(client_ids: Iterable[int], server_ids: Iterable[int]) -> TagUpdateActions:
    client = frozenset(client_ids)
    server = frozenset(server_ids)
    return TagUpdateActions(add=client - server, remove=server - client, ignore=client & server)


class TagLookup:
    """Snapshot of all tags keyed by normalised name.

    The snapshot is loaded on first use and kept until ``refresh()``.
    """

    def __init__(self, loader: Callable[[], Iterable[Tag]]) -> None:
        self._loader = loader
        self._snapshot: dict[str, Tag] | None = None

    def refresh(self) -> dict[str, Tag]:
        snapshot: dict[str, Tag] = {}
        for tag in self._loader():
            snapshot[lookup_key(tag.name)] = tag
        self._snapshot = snapshot
        log.debug("Loaded %d tag(s) into lookup", len(snapshot))
        return snapshot

    @property
    def tags(self) -> dict[str, Tag]:
        if self._snapshot is None:
            return self.refresh()
        return self._snapshot

    def get(self, name: str) -> Tag | None:
        for tag in self.tags.values():
            if tag.name == name:
                return tag
        return None

    def search_by_name(self, name: str) -> Tag | None:
        return self.tags.get(lookup_key(name))

    def search_by_names(self, phrase: str) -> list[Tag]:
        """Tags whose lookup key occurs anywhere in ``phrase``."""

        haystack = phrase.lower()
        found: list[Tag] = []
        for key, tag in self.tags.items():
            if key in haystack and tag not in found:
                found.append(tag)
        return found
