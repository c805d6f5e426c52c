import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payment_relay.body_parsing import BodyDecodeError
from payment_relay.config import Settings, load_settings
from payment_relay.logging_config import setup_logger
from payment_relay.routes import router
from payment_relay.store import PaymentStore, build_payment_store
from payment_relay.stripe_service import PaymentClient, build_payment_client

logger = logging.getLogger(__name__)


async def body_decode_error_handler(request: Request, exc: BodyDecodeError):
    logger.warning("Rejected body on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    payment_client: Optional[PaymentClient] = None,
    payment_store: Optional[PaymentStore] = None,
) -> FastAPI:
    """Build the relay. Adapters not passed in are built from ``settings``."""
    if settings is None:
        settings = load_settings()
    if payment_client is None:
        payment_client = build_payment_client(settings)
    if payment_store is None:
        payment_store = build_payment_store(settings)

    app = FastAPI(title="Payment Relay")

    app.state.settings = settings
    app.state.payment_client = payment_client
    app.state.payment_store = payment_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BodyDecodeError, body_decode_error_handler)
    app.include_router(router)

    logger.info(
        "Stripe %s, webhook %s, store %s",
        "enabled" if payment_client else "disabled",
        "enabled" if payment_client and settings.stripe_webhook_secret else "disabled",
        type(payment_store).__name__ if payment_store else "disabled",
    )
    return app


def run():
    settings = load_settings()
    setup_logger(settings)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
