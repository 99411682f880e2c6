from .contacts import ContactFilter, ContactStore  # noqa: F401
from .memory import InMemoryContactStore  # noqa: F401
from .postgres import PostgresContactStore  # noqa: F401

__all__ = ["ContactFilter", "ContactStore", "InMemoryContactStore", "PostgresContactStore"]
