"""
Human-readable reference numbers for RFx events and purchase orders.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_reference(prefix: str, now: Optional[datetime] = None) -> str:
    """Return e.g. ``PO-20240131-3F9A1C``."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"


def generate_rfx_reference(now: Optional[datetime] = None) -> str:
    return generate_reference("RFX", now)


def generate_po_number(now: Optional[datetime] = None) -> str:
    return generate_reference("PO", now)
