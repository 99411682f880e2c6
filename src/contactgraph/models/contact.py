from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class LinkPrecedence(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(slots=True)
class Contact:
    id: int
    email: str | None
    phone_number: str | None
    linked_id: int | None
    link_precedence: LinkPrecedence
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_primary(self) -> bool:
        return self.link_precedence is LinkPrecedence.PRIMARY

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def seniority(self) -> tuple[datetime, int]:
        """Ordering key: creation time, then id for coinciding timestamps."""
        return (self.created_at, self.id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Contact":
        return cls(
            id=row["id"],
            email=row["email"],
            phone_number=row["phone_number"],
            linked_id=row["linked_id"],
            link_precedence=LinkPrecedence(row["link_precedence"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row.get("deleted_at"),
        )


__all__ = ["Contact", "LinkPrecedence"]
