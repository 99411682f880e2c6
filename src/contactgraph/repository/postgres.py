from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, List, Sequence, Tuple

from psycopg import Connection, sql
from psycopg.rows import dict_row

from ..errors import ContactNotFoundError
from ..logging import get_logger
from ..models import Contact, LinkPrecedence
from .contacts import ContactFilter, ContactStore, check_changes

logger = get_logger("contactgraph.repository")

CONTACT_COLUMNS = (
    "id, email, phone_number, linked_id, link_precedence, created_at, updated_at, deleted_at"
)


def _where(selector: ContactFilter) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []
    if selector.email is not None:
        clauses.append("email = %s")
        params.append(selector.email)
    if selector.phone_number is not None:
        clauses.append("phone_number = %s")
        params.append(selector.phone_number)
    if selector.ids:
        clauses.append("id = ANY(%s)")
        params.append(list(selector.ids))
    if selector.linked_ids:
        clauses.append("linked_id = ANY(%s)")
        params.append(list(selector.linked_ids))
    return "(" + " OR ".join(clauses) + ") AND deleted_at IS NULL", params


def _set_clause(changes: dict[str, Any]) -> Tuple[sql.Composed, List[Any]]:
    assignments = [
        sql.SQL("{} = %s").format(sql.Identifier(field_name)) for field_name in changes
    ]
    assignments.append(sql.SQL("updated_at = clock_timestamp()"))
    params = [value.value if isinstance(value, Enum) else value for value in changes.values()]
    return sql.SQL(", ").join(assignments), params


class PostgresContactStore(ContactStore):
    """Contact graph persisted in the ``contacts`` table.

    The connection is expected in autocommit mode; ``transaction()`` opens
    an explicit block so every lock taken inside it lives until commit or
    rollback.
    """

    def __init__(self, conn: Connection, *, lock_timeout_ms: int = 0) -> None:
        self.conn = conn
        self.lock_timeout_ms = lock_timeout_ms

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.conn.transaction():
            if self.lock_timeout_ms:
                with self.conn.cursor() as cur:
                    # SET does not accept bind parameters
                    cur.execute(
                        sql.SQL("SET LOCAL lock_timeout = {}").format(
                            sql.Literal(f"{self.lock_timeout_ms}ms")
                        )
                    )
            yield self.conn

    def lock_identifiers(self, keys: Sequence[str]) -> None:
        with self.conn.cursor() as cur:
            for key in sorted(set(keys)):
                cur.execute("SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))", (key,))

    def lock_contacts(self, contact_ids: Sequence[int]) -> List[Contact]:
        if not contact_ids:
            return []
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {CONTACT_COLUMNS}
                FROM contacts
                WHERE id = ANY(%s) AND deleted_at IS NULL
                ORDER BY id
                FOR UPDATE
                """,
                (sorted(set(contact_ids)),),
            )
            return [Contact.from_row(row) for row in cur.fetchall()]

    def find_many(self, selector: ContactFilter) -> List[Contact]:
        if selector.is_empty():
            return []
        where, params = _where(selector)
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {CONTACT_COLUMNS}
                FROM contacts
                WHERE {where}
                ORDER BY created_at, id
                """,
                params,
            )
            return [Contact.from_row(row) for row in cur.fetchall()]

    def find_unique(self, contact_id: int) -> Contact | None:
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {CONTACT_COLUMNS} FROM contacts WHERE id = %s AND deleted_at IS NULL",
                (contact_id,),
            )
            row = cur.fetchone()
            return Contact.from_row(row) if row else None

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
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                INSERT INTO contacts (email, phone_number, linked_id, link_precedence, created_at, updated_at)
                VALUES (%s, %s, %s, %s, clock_timestamp(), clock_timestamp())
                RETURNING {CONTACT_COLUMNS}
                """,
                (email, phone_number, linked_id, LinkPrecedence(link_precedence).value),
            )
            row = cur.fetchone()
        return Contact.from_row(row)

    def update(self, contact_id: int, **changes: Any) -> Contact:
        check_changes(changes)
        assignments, params = _set_clause(changes)
        query = sql.SQL(
            "UPDATE contacts SET {} WHERE id = %s AND deleted_at IS NULL RETURNING " + CONTACT_COLUMNS
        ).format(assignments)
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, [*params, contact_id])
            row = cur.fetchone()
        if row is None:
            raise ContactNotFoundError(contact_id)
        return Contact.from_row(row)

    def update_many(self, selector: ContactFilter, **changes: Any) -> int:
        check_changes(changes)
        if selector.is_empty():
            return 0
        assignments, params = _set_clause(changes)
        where, where_params = _where(selector)
        query = sql.SQL("UPDATE contacts SET {} WHERE " + where).format(assignments)
        with self.conn.cursor() as cur:
            cur.execute(query, [*params, *where_params])
            updated = cur.rowcount or 0
        logger.debug("contacts_updated", count=updated, changes=sorted(changes))
        return updated


__all__ = ["PostgresContactStore"]
