"""Contact submission pipeline: rate limit, bot checks, field validation, record."""

import json
import logging
import time
from typing import Callable, List, Optional

from fastapi import HTTPException, status

from src.shared.contact.bot_protection import check_bot_signals
from src.shared.contact.config import ContactConfig
from src.shared.contact.field_validation import (
    ValidationLimits,
    clean_submission,
    validate_contact_fields,
)
from src.shared.contact.rate_limiter import RATE_LIMIT_MESSAGE, RateLimitStore
from src.shared.contact.schemas import ContactResponse, ContactSubmission, FieldError

SUCCESS_MESSAGE = "Thank you for contacting us! Your message has been received."

Clock = Callable[[], int]


def current_time_ms() -> int:
    """Wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


def _rejection(errors: List[FieldError]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"errors": [error.model_dump() for error in errors]}
    )


def record_submission(submission: ContactSubmission) -> None:
    """Write the accepted submission to the process log. Content is untrusted, so it is JSON-encoded."""
    fields = json.dumps({
        "first_name": submission.first_name,
        "last_name": submission.last_name,
        "email": submission.email,
        "message": submission.message,
    })
    logging.info(f"New contact submission: {fields}")


class ContactSubmissionHandler:
    """
    Runs a submission through each stage in order and stops at the first
    stage that fails. Field validation reports all of its errors together.
    """

    def __init__(
        self,
        config: ContactConfig,
        rate_limiter: RateLimitStore,
        clock: Optional[Clock] = None,
        recorder: Callable[[ContactSubmission], None] = record_submission
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self.clock = clock or current_time_ms
        self.recorder = recorder
        self.limits = ValidationLimits(message_min_length=config.message_min_length)

    def check_rate_limit(self, client_id: str, now_ms: int) -> None:
        decision = self.rate_limiter.hit(client_id, now_ms)
        if not decision.allowed:
            logging.warning(
                f"Contact rate limit exceeded for {client_id} "
                f"({decision.count} requests, limit {decision.limit})"
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"message": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": str(decision.retry_after_seconds(now_ms))}
            )

    def check_bot_heuristics(self, submission: ContactSubmission, client_id: str, now_ms: int) -> None:
        error = check_bot_signals(
            submission,
            now_ms,
            min_elapsed_ms=self.config.min_elapsed_ms,
            max_elapsed_ms=self.config.max_elapsed_ms,
            expiry_check_enabled=self.config.expiry_check_enabled,
        )
        if error is not None:
            logging.warning(f"Contact submission blocked ({error.path}: {error.msg}) from {client_id}")
            raise _rejection([error])

    def check_fields(self, submission: ContactSubmission) -> None:
        errors = validate_contact_fields(submission, self.limits)
        if errors:
            raise _rejection(errors)

    def process(self, submission: ContactSubmission, client_id: str) -> ContactResponse:
        """
        Validate and record a submission.

        Raises:
            HTTPException 429 when the client is over its rate limit,
            HTTPException 400 with an errors list for bot signals or invalid fields
        """
        now_ms = self.clock()

        self.check_rate_limit(client_id, now_ms)
        self.check_bot_heuristics(submission, client_id, now_ms)
        self.check_fields(submission)

        self.recorder(clean_submission(submission))
        return ContactResponse(message=SUCCESS_MESSAGE)
