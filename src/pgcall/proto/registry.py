"""Run-scoped record of message names already emitted."""

from __future__ import annotations

import logging
from typing import Iterator

log = logging.getLogger(__name__)


class DedupRegistry:
    """Message names emitted so far in one run.

    Names are the only key: when two different structures derive the same
    name, the first one emitted wins and later ones become references to it.
    A fingerprint of the field list is kept so such collisions get logged.

    Not thread-safe. Use one registry per run.
    """

    def __init__(self, parent: DedupRegistry | None = None):
        self._parent = parent
        self._seen: dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        if name in self._seen:
            return True
        return self._parent is not None and name in self._parent

    def __iter__(self) -> Iterator[str]:
        if self._parent is not None:
            yield from self._parent
        yield from self._seen

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def fingerprint(self, name: str) -> str | None:
        if name in self._seen:
            return self._seen[name]
        if self._parent is not None:
            return self._parent.fingerprint(name)
        return None

    def add(self, name: str, fingerprint: str = "") -> bool:
        """Record name as emitted. Returns False if it was already known."""
        known = self.fingerprint(name)
        if known is not None:
            if known and fingerprint and known != fingerprint:
                log.warning(
                    "message %s already emitted with fields (%s), not (%s)",
                    name,
                    known,
                    fingerprint,
                )
            return False
        self._seen[name] = fingerprint
        return True

    def fork(self) -> DedupRegistry:
        """Child registry whose additions reach this one only on commit()."""
        return DedupRegistry(parent=self)

    def commit(self) -> None:
        """Copy this fork's names into its parent."""
        if self._parent is None:
            raise RuntimeError("commit() called on a root registry")
        for name, fingerprint in self._seen.items():
            self._parent.add(name, fingerprint)
        self._seen.clear()
