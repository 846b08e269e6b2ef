"""Pydantic schemas for contact API."""

import math
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


def _as_text(value: Any) -> str:
    """Coerce a raw body value to text the way a form post would carry it."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ContactSubmission(BaseModel):
    """
    One contact form submission as received from the client.

    Values are kept as text and unvalidated here; the contact pipeline
    decides what is acceptable and reports every problem it finds.
    """
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    message: str = ""
    honeypot: str = ""
    form_timestamp: Optional[str] = None

    @field_validator('first_name', 'last_name', 'email', 'message', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)

    @field_validator('honeypot', mode='before')
    @classmethod
    def coerce_honeypot(cls, v):
        # Falsy JSON scalars (false, 0) mean the field was left empty
        if v is None or (isinstance(v, (bool, int, float)) and not v):
            return ""
        return _as_text(v)

    @field_validator('form_timestamp', mode='before')
    @classmethod
    def coerce_timestamp(cls, v):
        if v is None:
            return None
        # JSON numbers may arrive as floats; keep the whole milliseconds
        if isinstance(v, float) and math.isfinite(v):
            return str(int(v))
        return _as_text(v)


class FieldError(BaseModel):
    """A single failed rule, shaped like the errors the frontend maps onto fields."""
    type: str = "field"
    value: Any = None
    msg: str
    path: str
    location: str = "body"


class ContactResponse(BaseModel):
    """Schema for a successful contact form response."""
    message: str


class ValidationErrorResponse(BaseModel):
    """Schema for a rejected submission (400)."""
    errors: List[FieldError] = Field(default_factory=list)


class RateLimitResponse(BaseModel):
    """Schema for a rate-limited submission (429)."""
    message: str
