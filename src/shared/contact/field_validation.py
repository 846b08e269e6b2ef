"""
Field-level validation for contact form submissions.

Each field has an ordered list of rules. A rule is a plain function that
takes the trimmed value (and the configured limits) and returns an error
message or None. Every rule of every field runs, so a single response can
report all problems at once.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from email_validator import EmailNotValidError, validate_email as check_email_syntax

from src.shared.contact.config import DEFAULT_MESSAGE_MIN_LENGTH
from src.shared.contact.schemas import ContactSubmission, FieldError


# Maximum lengths for the business fields
MAX_NAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100
MAX_MESSAGE_LENGTH = 2000

# Letters, whitespace, hyphens, apostrophes and periods only
NAME_PATTERN = re.compile(r"^[A-Za-z\s\-'.]+$")

GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}
OUTLOOK_DOMAINS = {
    "hotmail.com", "hotmail.co.uk", "hotmail.fr", "hotmail.de",
    "live.com", "live.co.uk", "msn.com", "outlook.com", "outlook.de",
}
YAHOO_DOMAINS = {"yahoo.com", "yahoo.co.uk", "yahoo.fr", "ymail.com", "rocketmail.com"}
ICLOUD_DOMAINS = {"icloud.com", "me.com", "mac.com"}

Rule = Callable[[str, "ValidationLimits"], Optional[str]]


@dataclass
class ValidationLimits:
    """Limits that vary by deployment."""
    message_min_length: int = DEFAULT_MESSAGE_MIN_LENGTH


def normalize_email(email: str) -> str:
    """
    Normalize an email address for comparison and storage.

    Lowercases the whole address and strips provider-specific noise:
    dots and +tags for Gmail (googlemail.com becomes gmail.com), +tags for
    Outlook and iCloud, -tags for Yahoo. Values without an @ are only
    lowercased.
    """
    email = email.strip()
    local, sep, domain = email.rpartition("@")
    if not sep or not local or not domain:
        return email.lower()

    local = local.lower()
    domain = domain.lower()
    stripped = local

    if domain in GMAIL_DOMAINS:
        stripped = local.split("+", 1)[0].replace(".", "")
        domain = "gmail.com"
    elif domain in OUTLOOK_DOMAINS or domain in ICLOUD_DOMAINS:
        stripped = local.split("+", 1)[0]
    elif domain in YAHOO_DOMAINS:
        stripped = local.split("-", 1)[0]

    # Never normalize down to an empty local part
    if stripped:
        local = stripped

    return f"{local}@{domain}"


def is_valid_email(email: str) -> bool:
    """Check local@domain.tld shape without any DNS lookups."""
    if not email or any(ch.isspace() for ch in email):
        return False
    try:
        check_email_syntax(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _required(label: str) -> Rule:
    def rule(value: str, limits: ValidationLimits) -> Optional[str]:
        if not value:
            return f"{label} is required."
        return None
    return rule


def _name_max_length(label: str) -> Rule:
    def rule(value: str, limits: ValidationLimits) -> Optional[str]:
        if len(value) > MAX_NAME_LENGTH:
            return f"{label} cannot exceed {MAX_NAME_LENGTH} characters."
        return None
    return rule


def _name_characters(label: str) -> Rule:
    def rule(value: str, limits: ValidationLimits) -> Optional[str]:
        if not NAME_PATTERN.match(value):
            return f"{label} contains invalid characters."
        return None
    return rule


def _email_format(value: str, limits: ValidationLimits) -> Optional[str]:
    if not is_valid_email(value):
        return "Please enter a valid email address."
    return None


def _email_max_length(value: str, limits: ValidationLimits) -> Optional[str]:
    if len(normalize_email(value)) > MAX_EMAIL_LENGTH:
        return "Email is too long."
    return None


def _message_min_length(value: str, limits: ValidationLimits) -> Optional[str]:
    if len(value) < limits.message_min_length:
        return f"Message must be at least {limits.message_min_length} characters."
    return None


def _message_max_length(value: str, limits: ValidationLimits) -> Optional[str]:
    if len(value) > MAX_MESSAGE_LENGTH:
        return f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters."
    return None


# Declaration order here is the order errors are reported in.
FIELD_RULES: Sequence[Tuple[str, Sequence[Rule]]] = (
    ("first_name", (
        _required("First name"),
        _name_max_length("First name"),
        _name_characters("First name"),
    )),
    ("last_name", (
        _required("Last name"),
        _name_max_length("Last name"),
        _name_characters("Last name"),
    )),
    ("email", (
        _required("Email"),
        _email_format,
        _email_max_length,
    )),
    ("message", (
        _required("Message"),
        _message_min_length,
        _message_max_length,
    )),
)


def validate_contact_fields(
    submission: ContactSubmission,
    limits: Optional[ValidationLimits] = None
) -> List[FieldError]:
    """
    Run every field rule against a submission.

    Args:
        submission: Submission to check (not modified)
        limits: Deployment limits, defaults if omitted

    Returns:
        FieldErrors in rule declaration order; empty if the submission is valid
    """
    limits = limits or ValidationLimits()
    errors: List[FieldError] = []

    for field_name, rules in FIELD_RULES:
        value = getattr(submission, field_name).strip()
        for rule in rules:
            message = rule(value, limits)
            if message is not None:
                errors.append(FieldError(value=value, msg=message, path=field_name))

    return errors


def clean_submission(submission: ContactSubmission) -> ContactSubmission:
    """Return a copy with trimmed fields and a normalized email address."""
    return submission.model_copy(update={
        "first_name": submission.first_name.strip(),
        "last_name": submission.last_name.strip(),
        "email": normalize_email(submission.email),
        "message": submission.message.strip(),
    })
