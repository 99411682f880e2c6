from __future__ import annotations

from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import get_settings
from ..db import get_connection
from ..errors import ContactGraphError
from ..logging import get_logger
from ..models import IdentifyRequest, IdentifyResponse
from ..repository import ContactStore, PostgresContactStore
from ..services import IdentityResolver

logger = get_logger("contactgraph.routes.identify")

router = APIRouter(tags=["identify"])


def get_store() -> Iterator[ContactStore]:
    settings = get_settings()
    with get_connection() as conn:
        yield PostgresContactStore(conn, lock_timeout_ms=settings.lock_timeout_ms)


def get_resolver(store: ContactStore = Depends(get_store)) -> IdentityResolver:
    return IdentityResolver(store, max_attempts=get_settings().max_attempts)


@router.post("/identify", response_model=IdentifyResponse)
def identify(
    payload: IdentifyRequest,
    resolver: IdentityResolver = Depends(get_resolver),
) -> IdentifyResponse:
    try:
        summary = resolver.identify(email=payload.email, phone_number=payload.phone_number)
    except ContactGraphError as exc:
        logger.exception("identify_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
        ) from exc
    return IdentifyResponse(contact=summary)


__all__ = ["get_resolver", "get_store", "router"]
