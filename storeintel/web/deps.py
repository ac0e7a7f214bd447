"""FastAPI dependencies for database access and store scoping."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from storeintel.core.errors import InvalidParameter
from storeintel.db.session import SessionLocal


def get_session_factory() -> Callable[[], Session]:
    """Session factory; each worker thread opens and closes its own session."""
    return SessionLocal


def require_store_id(
    store_id: str | None = Query(None, description="Store to analyse"),
) -> str:
    """Validate the store identifier.

    This is also where a host application plugs in its role gate: override
    this dependency (``app.dependency_overrides[require_store_id]``) with one
    that authenticates the caller and checks access to the store.

    Raises:
        InvalidParameter: If store_id is missing or blank

    """
    if store_id is None or not store_id.strip():
        raise InvalidParameter("store_id is required")
    return store_id.strip()


# Type aliases for cleaner endpoints
SessionFactory = Annotated[Callable[[], Session], Depends(get_session_factory)]
StoreId = Annotated[str, Depends(require_store_id)]
