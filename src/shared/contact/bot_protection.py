"""
Bot heuristics for contact form submissions.

Two signals are checked, honeypot first:
- the hidden honeypot field must be left empty
- the page-load timestamp sent with the form must be neither too recent
  (scripted fill) nor too old (replayed form)

Note: a client clock running ahead of the server produces a negative
elapsed time, which fails the minimum-time rule. Legitimate users with
skewed clocks are rejected as "too quickly"; this is a known limitation of
the heuristic.
"""

from typing import Optional

from src.shared.contact.config import DEFAULT_MAX_ELAPSED_MS, DEFAULT_MIN_ELAPSED_MS
from src.shared.contact.schemas import ContactSubmission, FieldError

HONEYPOT_FIELD = "honeypot"
TIMESTAMP_FIELD = "form_timestamp"

BOT_ERROR_PATHS = frozenset({HONEYPOT_FIELD, TIMESTAMP_FIELD})

HONEYPOT_MESSAGE = "Bot detected via honeypot field."
INVALID_TIMESTAMP_MESSAGE = "Missing or invalid timestamp."
TOO_QUICK_MESSAGE = "Form submitted too quickly. Possible bot."
EXPIRED_MESSAGE = "Form expired. Please refresh the page and try again."


def parse_form_timestamp(value: Optional[str]) -> Optional[int]:
    """Parse a millisecond timestamp; None if missing, malformed or zero."""
    if value is None:
        return None
    try:
        timestamp = int(value.strip())
    except ValueError:
        return None
    if timestamp == 0:
        return None
    return timestamp


def check_honeypot(value: str) -> Optional[FieldError]:
    if value:
        return FieldError(value=value, msg=HONEYPOT_MESSAGE, path=HONEYPOT_FIELD)
    return None


def check_form_timestamp(
    value: Optional[str],
    now_ms: int,
    min_elapsed_ms: int = DEFAULT_MIN_ELAPSED_MS,
    max_elapsed_ms: int = DEFAULT_MAX_ELAPSED_MS,
    expiry_check_enabled: bool = True
) -> Optional[FieldError]:
    """
    Check how long the form was open before it was submitted.

    Args:
        value: Raw form_timestamp (milliseconds since epoch, as text)
        now_ms: Current time in milliseconds since epoch
        min_elapsed_ms: Fastest plausible human fill time
        max_elapsed_ms: Age after which the form is considered expired
        expiry_check_enabled: Whether to apply the max_elapsed_ms rule

    Returns:
        FieldError describing the failure, or None if the timestamp passes
    """
    submitted_at = parse_form_timestamp(value)
    if submitted_at is None:
        return FieldError(value=value, msg=INVALID_TIMESTAMP_MESSAGE, path=TIMESTAMP_FIELD)

    elapsed = now_ms - submitted_at
    if elapsed < min_elapsed_ms:
        return FieldError(value=value, msg=TOO_QUICK_MESSAGE, path=TIMESTAMP_FIELD)

    if expiry_check_enabled and elapsed > max_elapsed_ms:
        return FieldError(value=value, msg=EXPIRED_MESSAGE, path=TIMESTAMP_FIELD)

    return None


def check_bot_signals(
    submission: ContactSubmission,
    now_ms: int,
    min_elapsed_ms: int = DEFAULT_MIN_ELAPSED_MS,
    max_elapsed_ms: int = DEFAULT_MAX_ELAPSED_MS,
    expiry_check_enabled: bool = True
) -> Optional[FieldError]:
    """Return the first bot signal a submission trips, or None if it looks human."""
    honeypot_error = check_honeypot(submission.honeypot)
    if honeypot_error is not None:
        return honeypot_error
    return check_form_timestamp(
        submission.form_timestamp,
        now_ms,
        min_elapsed_ms=min_elapsed_ms,
        max_elapsed_ms=max_elapsed_ms,
        expiry_check_enabled=expiry_check_enabled,
    )


def is_bot_error(error: FieldError) -> bool:
    """Bot errors get a generic message upstream instead of field-level detail."""
    return error.path in BOT_ERROR_PATHS
