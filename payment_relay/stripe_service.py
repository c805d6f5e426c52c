"""
Stripe adapter: checkout session creation and webhook verification.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from payment_relay.config import DEFAULT_WEBHOOK_TOLERANCE, Settings
from payment_relay.results import Failure, FailureKind, Result, Success

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class WebhookEvent:
    """Verified webhook event."""
    id: Optional[str]
    type: str
    data_object: Dict[str, Any] = field(default_factory=dict)


class PaymentClient(ABC):

    @abstractmethod
    def create_session(
        self,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Result[str]:
        """Create a one-time payment session and return its redirect URL."""

    @abstractmethod
    def verify_and_parse_event(
        self,
        payload: bytes,
        signature: Optional[str],
        secret: str,
    ) -> Result[WebhookEvent]:
        """Check the signature header against the raw payload and decode the event."""


class StripePaymentClient(PaymentClient):

    def __init__(self, api_key: str, tolerance: int = DEFAULT_WEBHOOK_TOLERANCE):
        self.api_key = api_key
        self.tolerance = tolerance

    def create_session(self, price_id, user_id, success_url, cancel_url):
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"user_id": user_id},
            )
        except stripe.StripeError as e:
            return Failure(FailureKind.UPSTREAM_FAILURE, "Checkout session creation failed", e)

        if not session.url:
            return Failure(FailureKind.UPSTREAM_FAILURE, f"Session {session.id} has no URL")
        return Success(session.url)

    def verify_and_parse_event(self, payload, signature, secret):
        if not signature:
            return Failure(FailureKind.INVALID_REQUEST, "Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                secret,
                self.tolerance,
                api_key=self.api_key,
            )
        except stripe.SignatureVerificationError as e:
            return Failure(FailureKind.INVALID_REQUEST, e.user_message or str(e), e)
        except (ValueError, AttributeError) as e:
            # undecodable bytes, not JSON, or JSON that is not an object
            return Failure(FailureKind.INVALID_REQUEST, "Invalid payload", e)

        try:
            return Success(WebhookEvent(
                id=event["id"],
                type=event["type"],
                data_object=event["data"]["object"].to_dict(),
            ))
        except KeyError as e:
            return Failure(FailureKind.INVALID_REQUEST, f"Event is missing {e}", e)


def build_payment_client(settings: Settings) -> Optional[PaymentClient]:
    if not settings.stripe_enabled:
        logger.warning("STRIPE_SECRET_KEY is not set, checkout and webhooks are disabled")
        return None
    return StripePaymentClient(settings.stripe_secret_key, settings.stripe_webhook_tolerance)
