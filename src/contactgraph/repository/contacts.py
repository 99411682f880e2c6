from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, List, Sequence

from ..models import Contact, LinkPrecedence


@dataclass(frozen=True, slots=True)
class ContactFilter:
    """Selector over live contacts.

    Every supplied clause is OR-ed with the others; a clause left at its
    default does not participate at all, so ``email=None`` never means
    "email IS NULL".
    """

    email: str | None = None
    phone_number: str | None = None
    ids: Sequence[int] = ()
    linked_ids: Sequence[int] = ()

    def is_empty(self) -> bool:
        return self.email is None and self.phone_number is None and not self.ids and not self.linked_ids

    def matches(self, contact: Contact) -> bool:
        if self.email is not None and contact.email == self.email:
            return True
        if self.phone_number is not None and contact.phone_number == self.phone_number:
            return True
        if contact.id in self.ids:
            return True
        return contact.linked_id is not None and contact.linked_id in self.linked_ids


UPDATABLE_FIELDS = frozenset({"email", "phone_number", "linked_id", "link_precedence"})


def check_changes(changes: dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Contact fields cannot be updated: {sorted(unknown)}")


class ContactStore(ABC):
    """Storage contract the identity core runs against.

    Reads never return tombstoned rows and always come back ordered by
    ``created_at`` then ``id``.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """Open one atomic unit of work: commit on success, roll back on error."""

    @abstractmethod
    def lock_identifiers(self, keys: Sequence[str]) -> None:
        """Hold transaction-scoped locks on identifier keys such as ``email:a@x.com``."""

    @abstractmethod
    def lock_contacts(self, contact_ids: Sequence[int]) -> List[Contact]:
        """Row-lock the given contacts in ascending id order and return their live state."""

    @abstractmethod
    def find_many(self, selector: ContactFilter) -> List[Contact]:
        """Return live contacts matching any clause of the selector."""

    @abstractmethod
    def find_unique(self, contact_id: int) -> Contact | None:
        """Return the live contact with this id, or None."""

    @abstractmethod
    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        """Insert a contact, returning it with its assigned id and timestamps."""

    @abstractmethod
    def update(self, contact_id: int, **changes: Any) -> Contact:
        """Apply field changes to one live contact and refresh ``updated_at``."""

    @abstractmethod
    def update_many(self, selector: ContactFilter, **changes: Any) -> int:
        """Apply field changes to every live contact matching the selector."""


__all__ = ["ContactFilter", "ContactStore", "UPDATABLE_FIELDS", "check_changes"]
