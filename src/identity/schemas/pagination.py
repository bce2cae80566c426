"""Keyset pagination: opaque cursors and the page envelope."""

import base64
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")

_SEPARATOR = "|"


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a newest-first listing.

    Pass ``next_cursor`` back unchanged to get the following page.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page. None on the last page.",
    )
    has_more: bool = Field(
        default=False,
        description="Whether more items follow this page.",
    )


def encode_cursor(position: datetime, row_id: UUID) -> str:
    """Cursor pointing just past the row at ``(position, row_id)``."""
    raw = f"{position.isoformat()}{_SEPARATOR}{row_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Inverse of :func:`encode_cursor`.

    Raises:
        ValueError: If the cursor was not produced by :func:`encode_cursor`.
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        position, _, row_id = raw.partition(_SEPARATOR)
        return datetime.fromisoformat(position), UUID(row_id)
    except ValueError as e:
        # binascii.Error and UnicodeDecodeError are ValueErrors too
        raise ValueError("Invalid cursor") from e
