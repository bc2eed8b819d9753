"""Argument helpers shared by the tool functions."""

import hashlib
from datetime import date
from uuid import UUID


def parse_user_id(user_id: str) -> UUID:
    """Accept a UUID string, or derive a stable UUID from any other name."""
    try:
        return UUID(user_id)
    except ValueError:
        return UUID(hashlib.md5(user_id.encode()).hexdigest())


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)
