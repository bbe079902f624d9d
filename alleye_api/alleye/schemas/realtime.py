from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


ChangeEventType = Literal["INSERT", "UPDATE", "DELETE"]


class ChangePayload(BaseModel):
    """Row-level change of one table."""
    table: str = Field(..., description="Table name, e.g. 'content' or 'profiles'.")
    event_type: ChangeEventType = Field(..., description="INSERT | UPDATE | DELETE")
    new: Optional[Dict[str, Any]] = Field(default=None, description="Row after the change (None on DELETE).")
    old: Optional[Dict[str, Any]] = Field(default=None, description="Row before the change, when known.")


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Message type (e.g., 'change').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
