from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Sequence

from ..errors import ContactNotFoundError
from ..models import Contact, LinkPrecedence
from .contacts import ContactFilter, ContactStore, check_changes


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryContactStore(ContactStore):
    """Process-local store, the deterministic stand-in for Postgres in tests.

    A re-entrant mutex held for the whole transaction serializes requests,
    and the row map is snapshotted on entry so a failed unit of work leaves
    no trace. Rows are handed out as copies, as a database would.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._rows: Dict[int, Contact] = {}
        self._next_id = 1
        self._mutex = threading.RLock()
        self._depth = 0
        self.locked_identifiers: List[str] = []
        self.locked_contact_ids: List[int] = []

    def load(self, contacts: Iterable[Contact]) -> None:
        """Seed rows verbatim, including tombstones and hand-built link data."""
        with self._mutex:
            for contact in contacts:
                self._rows[contact.id] = replace(contact)
                self._next_id = max(self._next_id, contact.id + 1)

    def all_rows(self) -> List[Contact]:
        """Every row including tombstones, in id order."""
        with self._mutex:
            return [replace(self._rows[key]) for key in sorted(self._rows)]

    @contextmanager
    def transaction(self) -> Iterator["InMemoryContactStore"]:
        with self._mutex:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshot = ({key: replace(row) for key, row in self._rows.items()}, self._next_id)
            self._depth = 1
            self.locked_identifiers = []
            self.locked_contact_ids = []
            try:
                yield self
            except BaseException:
                self._rows, self._next_id = snapshot
                raise
            finally:
                self._depth = 0

    def _require_transaction(self) -> None:
        if not self._depth:
            raise RuntimeError("Locks can only be taken inside a transaction")

    def lock_identifiers(self, keys: Sequence[str]) -> None:
        self._require_transaction()
        self.locked_identifiers.extend(sorted(set(keys)))

    def lock_contacts(self, contact_ids: Sequence[int]) -> List[Contact]:
        self._require_transaction()
        ordered = sorted(set(contact_ids))
        self.locked_contact_ids.extend(ordered)
        return [replace(self._rows[key]) for key in ordered if key in self._rows and not self._rows[key].is_deleted]

    def _live(self) -> List[Contact]:
        return sorted(
            (row for row in self._rows.values() if not row.is_deleted),
            key=lambda row: row.seniority,
        )

    def find_many(self, selector: ContactFilter) -> List[Contact]:
        if selector.is_empty():
            return []
        with self._mutex:
            return [replace(row) for row in self._live() if selector.matches(row)]

    def find_unique(self, contact_id: int) -> Contact | None:
        with self._mutex:
            row = self._rows.get(contact_id)
            if row is None or row.is_deleted:
                return None
            return replace(row)

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        if email is None and phone_number is None:
            raise ValueError("A contact needs an email or a phone number")
        with self._mutex:
            now = self._clock()
            contact = Contact(
                id=self._next_id,
                email=email,
                phone_number=phone_number,
                linked_id=linked_id,
                link_precedence=LinkPrecedence(link_precedence),
                created_at=now,
                updated_at=now,
            )
            self._rows[contact.id] = contact
            self._next_id += 1
            return replace(contact)

    def update(self, contact_id: int, **changes: Any) -> Contact:
        check_changes(changes)
        with self._mutex:
            row = self._rows.get(contact_id)
            if row is None or row.is_deleted:
                raise ContactNotFoundError(contact_id)
            self._apply(row, changes)
            return replace(row)

    def update_many(self, selector: ContactFilter, **changes: Any) -> int:
        check_changes(changes)
        if selector.is_empty():
            return 0
        with self._mutex:
            targets = [row for row in self._live() if selector.matches(row)]
            for row in targets:
                self._apply(row, changes)
            return len(targets)

    def _apply(self, row: Contact, changes: dict[str, Any]) -> None:
        for field_name, value in changes.items():
            if field_name == "link_precedence":
                value = LinkPrecedence(value)
            setattr(row, field_name, value)
        row.updated_at = self._clock()


__all__ = ["InMemoryContactStore"]
