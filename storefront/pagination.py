# Keyset pagination over (created_at DESC, id DESC) with base64 JSON cursors

import base64
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import and_, or_

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
MIN_ROW_ID = -(2 ** 63)
MAX_ROW_ID = 2 ** 63 - 1


@dataclass
class Cursor:
    id: int
    created_at: datetime


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
    limit: int = DEFAULT_PAGE_LIMIT


def encode_cursor(id: int, created_at: datetime) -> str:
    payload = json.dumps({"id": str(id), "createdAt": created_at.isoformat()})
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[Cursor]:
    """Return the decoded cursor, or None when the token is malformed."""
    if not cursor:
        return None
    try:
        data = json.loads(base64.b64decode(cursor, validate=True).decode("utf-8"))
        decoded = Cursor(id=int(data["id"]), created_at=datetime.fromisoformat(data["createdAt"]))
    except (ValueError, TypeError, KeyError, OverflowError):
        return None
    # SQLite integers are signed 64-bit
    if not MIN_ROW_ID <= decoded.id <= MAX_ROW_ID:
        return None
    return decoded


def get_limit(requested: Optional[int] = None) -> int:
    if not requested or requested < 1:
        return DEFAULT_PAGE_LIMIT
    return min(requested, MAX_PAGE_LIMIT)


def paginate(query, model, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page:
    """Fetch one page of ``query`` for ``model``.

    ``model`` must have ``id`` and ``created_at`` columns. An undecodable cursor
    falls back to the first page.
    """
    limit = get_limit(limit)
    decoded = decode_cursor(cursor)
    if decoded is not None:
        query = query.filter(
            or_(
                model.created_at < decoded.created_at,
                and_(model.created_at == decoded.created_at, model.id < decoded.id),
            )
        )
    rows = query.order_by(model.created_at.desc(), model.id.desc()).limit(limit + 1).all()

    has_more = len(rows) > limit
    rows = rows[:limit]
    next_cursor = encode_cursor(rows[-1].id, rows[-1].created_at) if has_more and rows else None
    return Page(items=rows, next_cursor=next_cursor, has_more=has_more, limit=limit)


def paginated_response(page: Page, data: List[Any], message: Optional[str] = None) -> dict:
    body = {
        "success": True,
        "data": data,
        "pagination": {
            "nextCursor": page.next_cursor,
            "hasMore": page.has_more,
            "limit": page.limit,
        },
    }
    if message:
        body["message"] = message
    return body
