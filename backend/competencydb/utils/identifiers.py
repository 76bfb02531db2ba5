from __future__ import annotations

import os
import time
import uuid
from datetime import date, datetime, timezone
from typing import Optional


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered) for primary keys.

    Layout: 48-bit Unix timestamp in milliseconds, 4-bit version (0b0111),
    then random bits with the RFC 4122 variant.
    """
    ts_ms = int(time.time() * 1000)
    ts_bytes = ts_ms.to_bytes(6, "big", signed=False)
    rand_bytes = os.urandom(10)
    raw = bytearray(ts_bytes + rand_bytes)
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


def to_date_only(value: Optional[date | datetime]) -> Optional[date]:
    """Drop the time part so session and due dates compare by calendar day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value
