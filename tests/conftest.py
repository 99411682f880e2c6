import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from contactgraph.models import Contact, LinkPrecedence  # noqa: E402
from contactgraph.repository import InMemoryContactStore  # noqa: E402
from contactgraph.services import IdentityResolver  # noqa: E402

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock: every reading is one second after the last."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_contact(
    contact_id: int,
    *,
    email: str | None = None,
    phone: str | None = None,
    linked_id: int | None = None,
    created_offset: int | None = None,
    deleted: bool = False,
) -> Contact:
    created = EPOCH - timedelta(days=1) + timedelta(seconds=created_offset if created_offset is not None else contact_id)
    return Contact(
        id=contact_id,
        email=email,
        phone_number=phone,
        linked_id=linked_id,
        link_precedence=LinkPrecedence.SECONDARY if linked_id is not None else LinkPrecedence.PRIMARY,
        created_at=created,
        updated_at=created,
        deleted_at=created if deleted else None,
    )


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(clock):
    return InMemoryContactStore(clock=clock)


@pytest.fixture
def resolver(store):
    return IdentityResolver(store)


@pytest.fixture
def contact_factory():
    return make_contact
