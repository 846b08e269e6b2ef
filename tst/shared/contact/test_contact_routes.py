import logging

import pytest
from fastapi.testclient import TestClient

from src.app import create_app
from src.shared.contact.config import ContactConfig
from src.shared.contact.rate_limiter import RateLimitStore

CONTACT_URL = "/api/contact"
RATE_LIMIT_MESSAGE = "Too many contact form submissions. Please try again later."


def paths(response):
    return [error["path"] for error in response.json()["errors"]]


def test_valid_submission_is_accepted(client, valid_payload):
    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 200
    assert response.json() == {"message": "Thank you for contacting us! Your message has been received."}


def test_form_encoded_submission_is_accepted(client, valid_payload):
    response = client.post(CONTACT_URL, data=valid_payload)

    assert response.status_code == 200


def test_numeric_timestamp_in_json_is_accepted(client, valid_payload, clock):
    valid_payload["form_timestamp"] = clock.now_ms - 5000

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 200


def test_accepted_submission_is_logged(client, valid_payload, caplog):
    with caplog.at_level(logging.INFO):
        client.post(CONTACT_URL, json=valid_payload)

    assert any(
        "New contact submission" in record.getMessage() and "ada.lovelace@acme.org" in record.getMessage()
        for record in caplog.records
    )


def test_honeypot_rejects_even_otherwise_invalid_submission(client, valid_payload):
    valid_payload.update({"honeypot": "I am a bot", "first_name": "", "email": "nope"})

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert paths(response) == ["honeypot"]
    error = response.json()["errors"][0]
    assert error["msg"] == "Bot detected via honeypot field."
    assert error["location"] == "body"


def test_too_quick_submission(client, valid_payload, clock):
    valid_payload["form_timestamp"] = str(clock.now_ms - 1000)

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert paths(response) == ["form_timestamp"]
    assert "too quickly" in response.json()["errors"][0]["msg"]


def test_expired_form(client, valid_payload, clock):
    valid_payload["form_timestamp"] = str(clock.now_ms - 3_600_001)

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert paths(response) == ["form_timestamp"]
    assert "expired" in response.json()["errors"][0]["msg"]


def test_missing_timestamp(client, valid_payload):
    del valid_payload["form_timestamp"]

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert response.json()["errors"][0]["msg"] == "Missing or invalid timestamp."


def test_empty_first_name_is_required(client, valid_payload):
    valid_payload["first_name"] = ""

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert errors[0]["path"] == "first_name"
    assert "required" in errors[0]["msg"]


def test_short_message_is_rejected(client, valid_payload):
    valid_payload["message"] = "Hi"

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert response.json()["errors"] == [{
        "type": "field",
        "value": "Hi",
        "msg": "Message must be at least 10 characters.",
        "path": "message",
        "location": "body",
    }]


def test_every_invalid_field_is_reported(client, valid_payload):
    valid_payload.update({"first_name": "R2D2", "last_name": "x" * 60, "email": "nope", "message": "x" * 2001})

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert [(error["path"], error["msg"]) for error in response.json()["errors"]] == [
        ("first_name", "First name contains invalid characters."),
        ("last_name", "Last name cannot exceed 50 characters."),
        ("email", "Please enter a valid email address."),
        ("message", "Message cannot exceed 2000 characters."),
    ]


def test_rate_limit_scenario(client, valid_payload, clock):
    for _ in range(5):
        assert client.post(CONTACT_URL, json=valid_payload).status_code == 200
        clock.advance(2000)

    clock.advance(5000)
    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 429
    assert response.json() == {"message": RATE_LIMIT_MESSAGE}
    assert "errors" not in response.json()
    assert response.headers["Retry-After"] == "45"

    clock.advance(60_000)
    assert client.post(CONTACT_URL, json=valid_payload).status_code == 200


def test_rate_limit_applies_before_bot_checks(client, valid_payload):
    for _ in range(5):
        client.post(CONTACT_URL, json=valid_payload)
    valid_payload["honeypot"] = "filled"

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 429


def test_forwarded_for_is_ignored_unless_proxy_trusted(client, valid_payload):
    for i in range(5):
        client.post(CONTACT_URL, json=valid_payload, headers={"X-Forwarded-For": f"203.0.113.{i}"})

    response = client.post(CONTACT_URL, json=valid_payload, headers={"X-Forwarded-For": "203.0.113.99"})

    assert response.status_code == 429


def test_forwarded_for_identifies_client_behind_trusted_proxy(valid_payload, clock):
    config = ContactConfig(rate_limit_max=1, trust_proxy=True)
    store = RateLimitStore(max_requests=1)
    client = TestClient(create_app(config=config, rate_limiter=store, clock=clock))

    first = client.post(CONTACT_URL, json=valid_payload, headers={"X-Forwarded-For": "203.0.113.1, 10.0.0.1"})
    second = client.post(CONTACT_URL, json=valid_payload, headers={"X-Forwarded-For": "203.0.113.2"})
    third = client.post(CONTACT_URL, json=valid_payload, headers={"X-Forwarded-For": "203.0.113.1"})

    assert (first.status_code, second.status_code, third.status_code) == (200, 200, 429)
    assert store.get_window("203.0.113.1", clock.now_ms).count == 2


def test_malformed_json_body(client):
    response = client.post(CONTACT_URL, content="{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"message": "Request body must be a JSON object or form data."}


def test_json_body_must_be_an_object(client):
    response = client.post(CONTACT_URL, json=["first_name", "Ada"])

    assert response.status_code == 400
    assert "errors" not in response.json()


def test_cors_headers_on_rejection(client, valid_payload):
    valid_payload["message"] = "Hi"

    response = client.post(CONTACT_URL, json=valid_payload, headers={"Origin": "http://localhost:3000"})

    assert response.status_code == 400
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_trailing_slash_reaches_the_pipeline(client, valid_payload):
    response = client.post(CONTACT_URL + "/", json=valid_payload)

    assert response.status_code == 200
    assert response.json() == {"message": "Thank you for contacting us! Your message has been received."}


def test_trailing_slash_is_rate_limited_with_the_same_counter(client, valid_payload):
    for _ in range(5):
        client.post(CONTACT_URL, json=valid_payload)

    response = client.post(CONTACT_URL + "/", json=valid_payload)

    assert response.status_code == 429


@pytest.mark.parametrize("honeypot", [False, 0, None, ""])
def test_falsy_json_honeypot_counts_as_empty(client, valid_payload, honeypot):
    valid_payload["honeypot"] = honeypot

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 200


@pytest.mark.parametrize("honeypot", [True, 1, "0", ["x"], []])
def test_truthy_json_honeypot_is_a_bot(client, valid_payload, honeypot):
    valid_payload["honeypot"] = honeypot

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 400
    assert paths(response) == ["honeypot"]


@pytest.mark.parametrize("offset", [10_000.0, 10_000.75])
def test_float_timestamp_in_json_is_accepted(client, valid_payload, clock, offset):
    valid_payload["form_timestamp"] = clock.now_ms - offset

    response = client.post(CONTACT_URL, json=valid_payload)

    assert response.status_code == 200
