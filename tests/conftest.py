import hashlib
import hmac
import json
import time

import pytest

from payment_relay.results import Failure, FailureKind, Success
from payment_relay.stripe_service import PaymentClient, WebhookEvent
from payment_relay.store import PaymentStore

WEBHOOK_SECRET = "whsec_test_secret"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a stripe-signature header the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def event_payload(event_type="checkout.session.completed", data_object=None) -> bytes:
    return json.dumps({
        "id": "evt_test_123",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object or {}},
    }).encode()


class FakePaymentClient(PaymentClient):

    def __init__(self, url="https://checkout.stripe.test/c/pay/cs_test_1", failure=None, event=None):
        self.url = url
        self.failure = failure
        self.event = event
        self.sessions = []
        self.verifications = []

    def create_session(self, price_id, user_id, success_url, cancel_url):
        self.sessions.append({
            "price_id": price_id,
            "user_id": user_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {"user_id": user_id},
        })
        if self.failure:
            return self.failure
        return Success(self.url)

    def verify_and_parse_event(self, payload, signature, secret):
        self.verifications.append((payload, signature, secret))
        if signature != "valid":
            return Failure(FailureKind.INVALID_REQUEST, "No signatures found matching the expected signature for payload")
        return Success(self.event)


class FakePaymentStore(PaymentStore):

    def __init__(self, failure=None):
        self.failure = failure
        self.records = []

    def insert_payment_record(self, record):
        if self.failure:
            return self.failure
        self.records.append(record)
        return Success(record)


@pytest.fixture
def completed_event():
    return WebhookEvent(
        id="evt_1",
        type="checkout.session.completed",
        data_object={
            "id": "cs_test_1",
            "amount_total": 4990,
            "payment_intent": "pi_123",
            "metadata": {"user_id": "user-42"},
        },
    )
