from .family import build_summary, select_primaries, should_create_secondary  # noqa: F401
from .resolver import IdentityResolver  # noqa: F401

__all__ = ["IdentityResolver", "build_summary", "select_primaries", "should_create_secondary"]
