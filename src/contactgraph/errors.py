from __future__ import annotations


class ContactGraphError(Exception):
    """Base class for failures raised by the identity core."""


class IdentityGraphError(ContactGraphError):
    """The stored contact graph violates a linking invariant.

    Raised for orphaned links, links pointing at a secondary, components
    without a primary and families that do not have exactly one primary.
    A response is never built from such a graph.
    """


class StaleGraphError(IdentityGraphError):
    """Rows locked for a write no longer match what the request read."""


class ContactNotFoundError(ContactGraphError):
    def __init__(self, contact_id: int) -> None:
        super().__init__(f"Contact {contact_id} not found")
        self.contact_id = contact_id


__all__ = [
    "ContactGraphError",
    "ContactNotFoundError",
    "IdentityGraphError",
    "StaleGraphError",
]
