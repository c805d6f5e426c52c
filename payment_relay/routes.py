import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, StrictStr

from payment_relay.body_parsing import WEBHOOK_PATH, decoded_body
from payment_relay.config import Settings
from payment_relay.models import PaymentRecord
from payment_relay.results import Failure, FailureKind
from payment_relay.store import PaymentStore
from payment_relay.stripe_service import CHECKOUT_SESSION_COMPLETED, PaymentClient

logger = logging.getLogger(__name__)

router = APIRouter()

HEALTH_MESSAGE = "Payment relay online"


class CheckoutSessionRequest(BaseModel):
    priceId: Optional[StrictStr] = None
    userId: Optional[StrictStr] = None


class CheckoutSessionResponse(BaseModel):
    url: str


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_payment_client(request: Request) -> Optional[PaymentClient]:
    return request.app.state.payment_client


def get_payment_store(request: Request) -> Optional[PaymentStore]:
    return request.app.state.payment_store


def checkout_error(failure: Failure) -> JSONResponse:
    if failure.kind is FailureKind.INVALID_REQUEST:
        logger.warning("Rejected checkout request: %s", failure.message)
        return JSONResponse(status_code=400, content={"error": failure.message})
    if failure.kind is FailureKind.NOT_CONFIGURED:
        logger.error("Checkout unavailable: %s", failure.message)
        return JSONResponse(status_code=500, content={"error": failure.message})
    if failure.kind is FailureKind.UPSTREAM_FAILURE:
        logger.error("Checkout error: %s (%r)", failure.message, failure.error)
        return JSONResponse(status_code=500, content={"error": "Stripe error"})
    raise ValueError(f"Unhandled failure kind: {failure.kind}")


def webhook_error(failure: Failure) -> PlainTextResponse:
    if failure.kind is FailureKind.NOT_CONFIGURED:
        logger.error("Webhook unavailable: %s", failure.message)
        return PlainTextResponse(failure.message, status_code=400)
    if failure.kind is FailureKind.INVALID_REQUEST:
        logger.warning("Invalid webhook: %s", failure.message)
        return PlainTextResponse(f"Webhook Error: {failure.message}", status_code=400)
    if failure.kind is FailureKind.UPSTREAM_FAILURE:
        logger.error("Webhook error: %s (%r)", failure.message, failure.error)
        return PlainTextResponse("Internal error", status_code=500)
    raise ValueError(f"Unhandled failure kind: {failure.kind}")


@router.get("/", response_class=PlainTextResponse)
def health():
    return HEALTH_MESSAGE


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    request: CheckoutSessionRequest = Depends(decoded_body(CheckoutSessionRequest)),
    settings: Settings = Depends(get_settings),
    payment_client: Optional[PaymentClient] = Depends(get_payment_client),
):
    if not request.priceId or not request.userId:
        return checkout_error(Failure(FailureKind.INVALID_REQUEST, "priceId and userId are required"))

    if payment_client is None:
        return checkout_error(Failure(FailureKind.NOT_CONFIGURED, "Stripe not configured"))

    if not settings.success_url or not settings.cancel_url:
        return checkout_error(Failure(FailureKind.NOT_CONFIGURED, "Frontend URL not configured"))

    result = payment_client.create_session(
        request.priceId,
        request.userId,
        settings.success_url,
        settings.cancel_url,
    )
    if not result.ok:
        return checkout_error(result)

    return CheckoutSessionResponse(url=result.value)


@router.post(WEBHOOK_PATH)
def stripe_webhook(
    payload: bytes = Depends(decoded_body()),
    stripe_signature: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    payment_client: Optional[PaymentClient] = Depends(get_payment_client),
    payment_store: Optional[PaymentStore] = Depends(get_payment_store),
):
    if payment_client is None or not settings.stripe_webhook_secret:
        return webhook_error(Failure(FailureKind.NOT_CONFIGURED, "Webhook not configured"))

    verified = payment_client.verify_and_parse_event(
        payload,
        stripe_signature,
        settings.stripe_webhook_secret,
    )
    if not verified.ok:
        return webhook_error(verified)

    event = verified.value
    if event.type != CHECKOUT_SESSION_COMPLETED or payment_store is None:
        logger.info("Webhook event %s (%s) acknowledged without action", event.id, event.type)
        return {"received": True}

    record = PaymentRecord.from_checkout_session(event.data_object)
    inserted = payment_store.insert_payment_record(record)
    if not inserted.ok:
        return webhook_error(inserted)

    logger.info(
        "Payment recorded for user %s (%s, %s)",
        record.user_id,
        record.payment_reference,
        record.amount,
    )
    return {"received": True}
