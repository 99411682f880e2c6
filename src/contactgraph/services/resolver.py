from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from ..errors import IdentityGraphError, StaleGraphError
from ..logging import get_logger
from ..models import Contact, IdentitySummary, LinkPrecedence
from ..repository import ContactFilter, ContactStore
from .family import (
    build_summary,
    family_of,
    identifier_keys,
    select_primaries,
    should_create_secondary,
)

logger = get_logger("contactgraph.resolver")


def _clean(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


class IdentityResolver:
    """Resolve one identity per request against an injected contact store.

    Each call to :meth:`identify` runs match, expand, decide and write in
    a single store transaction. When rows locked for writing turn out to
    have changed since they were read, the transaction is rolled back and
    the whole pipeline runs again, at most ``max_attempts`` times.
    """

    def __init__(self, store: ContactStore, *, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts

    def identify(self, email: str | None = None, phone_number: str | None = None) -> IdentitySummary:
        email = _clean(email)
        phone_number = _clean(phone_number)
        if email is None and phone_number is None:
            raise ValueError("At least one of email or phone_number must be provided")

        attempt = 0
        while True:
            attempt += 1
            try:
                with self.store.transaction():
                    family = self._resolve(email, phone_number)
                    return build_summary(family)
            except StaleGraphError as exc:
                if attempt >= self.max_attempts:
                    logger.error("identify_failed", attempts=attempt, error=str(exc))
                    raise
                logger.warning("identify_retry", attempt=attempt, error=str(exc))

    def find_matches(self, email: str | None, phone_number: str | None) -> List[Contact]:
        return self.store.find_many(ContactFilter(email=email, phone_number=phone_number))

    def expand(self, seeds: Sequence[Contact]) -> List[Contact]:
        """Every live contact reachable from the seeds through links."""
        found: Dict[int, Contact] = {}
        pending = list(seeds)
        while pending:
            contact = pending.pop()
            if contact.id in found:
                continue
            found[contact.id] = contact

            if contact.linked_id is not None and contact.linked_id not in found:
                parent = self.store.find_unique(contact.linked_id)
                if parent is None:
                    raise IdentityGraphError(
                        f"Contact {contact.id} links to missing contact {contact.linked_id}"
                    )
                pending.append(parent)

            if contact.is_primary:
                dependents = self.store.find_many(ContactFilter(linked_ids=[contact.id]))
                pending.extend(dependent for dependent in dependents if dependent.id not in found)

        return sorted(found.values(), key=lambda contact: contact.seniority)

    def merge(self, primaries: Sequence[Contact], contacts: Sequence[Contact]) -> Tuple[Contact, List[Contact]]:
        """Fold every younger primary and its dependents into the eldest one."""
        ordered = select_primaries(primaries)
        if len(ordered) < 2:
            raise ValueError("merge needs at least two primaries")
        survivor, others = ordered[0], ordered[1:]

        primary_ids = {primary.id for primary in ordered}
        for contact in contacts:
            if contact.id not in primary_ids and contact.linked_id not in primary_ids:
                raise IdentityGraphError(
                    f"Contact {contact.id} is linked to {contact.linked_id}, which is not a primary"
                )

        for primary in others:
            self.store.update(
                primary.id,
                link_precedence=LinkPrecedence.SECONDARY,
                linked_id=survivor.id,
            )
            relinked = self.store.update_many(
                ContactFilter(linked_ids=[primary.id]),
                linked_id=survivor.id,
            )
            logger.info(
                "primaries_merged",
                survivor_id=survivor.id,
                demoted_id=primary.id,
                relinked=relinked,
            )

        family = self.store.find_many(ContactFilter(ids=[survivor.id], linked_ids=[survivor.id]))
        missing = {contact.id for contact in contacts} - {member.id for member in family}
        if missing:
            raise IdentityGraphError(f"Contacts {sorted(missing)} were lost while merging into {survivor.id}")
        return survivor, family

    def _lock_primaries(
        self, matches: Sequence[Contact], primaries: Sequence[Contact]
    ) -> Tuple[List[Contact], List[Contact]]:
        expected = sorted(primary.id for primary in primaries)
        locked = self.store.lock_contacts(expected)
        if [contact.id for contact in locked if contact.is_primary] != expected:
            raise StaleGraphError(f"Primaries {expected} changed before they could be locked")

        contacts = self.expand(matches)
        current = select_primaries(contacts)
        if sorted(primary.id for primary in current) != expected:
            raise StaleGraphError(
                f"Identity graph moved while locking: expected primaries {expected}, "
                f"found {[primary.id for primary in current]}"
            )
        return contacts, current

    def _resolve(self, email: str | None, phone_number: str | None) -> List[Contact]:
        self.store.lock_identifiers(identifier_keys(email, phone_number))

        matches = self.find_matches(email, phone_number)
        primaries = select_primaries(self.expand(matches))

        if not primaries:
            if matches:
                raise IdentityGraphError(
                    f"Contacts {[contact.id for contact in matches]} have no reachable primary"
                )
            contact = self.store.create(
                email=email,
                phone_number=phone_number,
                link_precedence=LinkPrecedence.PRIMARY,
            )
            logger.info("contact_created", contact_id=contact.id)
            return [contact]

        contacts, primaries = self._lock_primaries(matches, primaries)
        if len(primaries) == 1:
            primary = primaries[0]
            family = family_of(primary, contacts)
        else:
            primary, family = self.merge(primaries, contacts)

        if should_create_secondary(family, email, phone_number):
            secondary = self.store.create(
                email=email,
                phone_number=phone_number,
                link_precedence=LinkPrecedence.SECONDARY,
                linked_id=primary.id,
            )
            logger.info("secondary_created", contact_id=secondary.id, primary_id=primary.id)
            family.append(secondary)

        return family


__all__ = ["IdentityResolver"]
