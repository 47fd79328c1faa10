"""
Response envelope shared by every endpoint:

    {"success": bool, "data": ..., "message": str, "error": str, "pagination": {...}}
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def pagination(page: Page, total: int) -> dict[str, int]:
    return {
        "page": page.page,
        "limit": page.limit,
        "total": total,
        "totalPages": math.ceil(total / page.limit) if page.limit > 0 else 0,
    }


def ok(
    data: Any = None,
    *,
    message: str | None = None,
    pagination: dict[str, int] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return body


def failure(error: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": error, **extra}


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
