"""
Store interfaces shared by the account index and the audit trail.

DocumentStore holds keyed JSON-compatible documents and offers
compare-and-swap, so concurrent pipeline instances never silently overwrite
each other. AppendLog is insert-only: there is no update or delete.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

Document = dict[str, Any]


class DocumentStore(ABC):
    """Keyed documents (one per tracked address)."""

    @abstractmethod
    def get(self, key: str) -> Document | None:
        ...

    @abstractmethod
    def list(self) -> list[Document]:
        """All documents in insertion order."""

    @abstractmethod
    def insert_if_absent(self, key: str, doc: Document) -> bool:
        """Insert doc under key. Returns False (and changes nothing) if key exists."""

    @abstractmethod
    def compare_and_swap(self, key: str, expected: Document, new: Document) -> bool:
        """Replace the document only if it still equals `expected`."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns False if it was not present."""

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def close(self) -> None:
        return None


class AppendLog(ABC):
    """Append-only sequence of documents."""

    @abstractmethod
    def append(self, doc: Document) -> None:
        ...

    @abstractmethod
    def read_all(self) -> list[Document]:
        ...

    def close(self) -> None:
        return None
