"""Pure helpers over already-loaded contact families.

Nothing here touches the store: these functions decide and project, the
resolver reads and writes.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..errors import IdentityGraphError
from ..models import Contact, IdentitySummary


def identifier_keys(email: str | None, phone_number: str | None) -> List[str]:
    """Lock keys for the identifiers supplied on a request."""
    keys: List[str] = []
    if email is not None:
        keys.append(f"email:{email}")
    if phone_number is not None:
        keys.append(f"phone:{phone_number}")
    return sorted(keys)


def select_primaries(contacts: Iterable[Contact]) -> List[Contact]:
    unique = {contact.id: contact for contact in contacts if contact.is_primary}
    return sorted(unique.values(), key=lambda contact: contact.seniority)


def family_of(primary: Contact, contacts: Iterable[Contact]) -> List[Contact]:
    """Primary plus its direct dependents, in seniority order.

    Every contact passed in must belong to the family; anything else means
    the component holds a link deeper than one level.
    """
    members: List[Contact] = []
    for contact in contacts:
        if contact.id == primary.id or contact.linked_id == primary.id:
            members.append(contact)
        else:
            raise IdentityGraphError(
                f"Contact {contact.id} is reachable from primary {primary.id} but linked to {contact.linked_id}"
            )
    if not any(member.id == primary.id for member in members):
        members.append(primary)
    return sorted(members, key=lambda contact: contact.seniority)


def should_create_secondary(
    family: Sequence[Contact],
    email: str | None,
    phone_number: str | None,
) -> bool:
    """Whether the request carries contact points the family lacks.

    An identical ``(email, phone_number)`` pair is never stored twice. A
    missing field only equals a missing field, so ``(a, None)`` duplicates
    a member holding ``(a, None)`` but not one holding ``(a, 123)``.
    """
    if any(member.email == email and member.phone_number == phone_number for member in family):
        return False

    has_email = email is not None and any(member.email == email for member in family)
    has_phone = phone_number is not None and any(member.phone_number == phone_number for member in family)

    if email is not None and phone_number is not None:
        return not has_email or not has_phone
    if email is not None:
        return not has_email
    if phone_number is not None:
        return not has_phone
    return False


def _collect(first: str | None, rest: Iterable[str | None]) -> List[str]:
    values: List[str] = []
    for value in (first, *rest):
        if value and value not in values:
            values.append(value)
    return values


def build_summary(family: Sequence[Contact]) -> IdentitySummary:
    primaries = [contact for contact in family if contact.is_primary]
    if len(primaries) != 1:
        raise IdentityGraphError(f"Expected exactly one primary in family, found {len(primaries)}")
    primary = primaries[0]
    secondaries = sorted(
        (contact for contact in family if not contact.is_primary),
        key=lambda contact: contact.seniority,
    )

    return IdentitySummary(
        primary_contact_id=primary.id,
        emails=_collect(primary.email, (contact.email for contact in secondaries)),
        phone_numbers=_collect(primary.phone_number, (contact.phone_number for contact in secondaries)),
        secondary_contact_ids=[contact.id for contact in secondaries],
    )


__all__ = [
    "build_summary",
    "family_of",
    "identifier_keys",
    "select_primaries",
    "should_create_secondary",
]
