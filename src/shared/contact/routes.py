"""Contact routes for receiving messages from the website form."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.shared.contact.schemas import (
    ContactResponse,
    ContactSubmission,
    RateLimitResponse,
    ValidationErrorResponse,
)
from src.shared.contact.service import ContactSubmissionHandler

router = APIRouter(prefix="/api/contact", tags=["contact"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
INVALID_BODY_MESSAGE = "Request body must be a JSON object or form data."


def get_client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Get client IP address for rate limiting."""
    if trust_proxy:
        # Check for forwarded IP (from proxy/load balancer)
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take the first IP in the chain
            return forwarded.split(",")[0].strip()
    # Fallback to direct connection
    return request.client.host if request.client else "unknown"


def get_contact_handler(request: Request) -> ContactSubmissionHandler:
    """The handler owned by the running application."""
    return request.app.state.contact_handler


async def read_contact_payload(request: Request) -> Dict[str, Any]:
    """Read the request body as JSON or form data into a plain dict."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: form.get(key) for key in form.keys()}

    try:
        payload = await request.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": INVALID_BODY_MESSAGE}
        )
    return payload


@router.post(
    "",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ValidationErrorResponse},
        429: {"model": RateLimitResponse},
    },
)
# The static mount at "/" would otherwise swallow the trailing-slash form
@router.post("/", response_model=ContactResponse, include_in_schema=False)
async def submit_contact_form(
    request: Request,
    handler: ContactSubmissionHandler = Depends(get_contact_handler)
):
    """
    Submit the contact form.

    Checks, in order:
    - Per-IP rate limiting (429 when exceeded)
    - Honeypot and form timestamp bot heuristics (400)
    - Field validation, all errors reported together (400)

    Accepted submissions are written to the application log.
    """
    payload = await read_contact_payload(request)
    submission = ContactSubmission.model_validate(payload)
    client_ip = get_client_ip(request, trust_proxy=handler.config.trust_proxy)
    return handler.process(submission, client_ip)
