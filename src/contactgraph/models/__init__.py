from .contact import Contact, LinkPrecedence  # noqa: F401
from .contracts import IdentifyRequest, IdentifyResponse, IdentitySummary  # noqa: F401

__all__ = ["Contact", "LinkPrecedence", "IdentifyRequest", "IdentifyResponse", "IdentitySummary"]
