"""Identity reconciliation over a graph of linked contact records."""

from .errors import (  # noqa: F401
    ContactGraphError,
    ContactNotFoundError,
    IdentityGraphError,
    StaleGraphError,
)
from .models import Contact, IdentitySummary, LinkPrecedence  # noqa: F401
from .services import IdentityResolver  # noqa: F401

__version__ = "0.1.0"
