from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import WEBHOOK_SECRET, event_payload, sign_payload
from payment_relay.config import Settings
from payment_relay.database import Base
from payment_relay.main import create_app
from payment_relay.models import Payment
from payment_relay.store import SqlAlchemyPaymentStore
from payment_relay.stripe_service import StripePaymentClient

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_integration.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client():
    settings = Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        frontend_url="https://shop.example.com",
    )
    app = create_app(
        settings,
        payment_client=StripePaymentClient(settings.stripe_secret_key),
        payment_store=SqlAlchemyPaymentStore(TestingSessionLocal),
    )
    with TestClient(app) as c:
        yield c


def test_full_checkout_lifecycle_integration(client, mocker):
    """
    1. Create checkout session (API -> Stripe mocked)
    2. Signed checkout.session.completed webhook (Stripe -> API -> DB)
    """

    # --- 1. CREATE CHECKOUT SESSION ---
    mock_session = mocker.Mock()
    mock_session.id = "cs_integration_test"
    mock_session.url = "https://checkout.stripe.com/c/pay/cs_integration_test"
    create = mocker.patch("stripe.checkout.Session.create", return_value=mock_session)

    response = client.post(
        "/create-checkout-session",
        json={"priceId": "price_game_001", "userId": "user-integration"}
    )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.com/c/pay/cs_integration_test"}
    metadata = create.call_args.kwargs["metadata"]
    assert metadata == {"user_id": "user-integration"}

    # --- 2. WEBHOOK ---
    payload = event_payload(data_object={
        "id": "cs_integration_test",
        "object": "checkout.session",
        "amount_total": 12345,
        "payment_intent": "pi_integration_test",
        "metadata": metadata,
    })

    webhook_response = client.post(
        "/webhook/stripe",
        content=payload,
        headers={"stripe-signature": sign_payload(payload), "content-type": "application/json"}
    )

    assert webhook_response.status_code == 200
    assert webhook_response.json() == {"received": True}

    db = TestingSessionLocal()
    payments = db.query(Payment).all()
    assert len(payments) == 1
    assert payments[0].user_id == "user-integration"
    assert payments[0].stripe_payment_intent == "pi_integration_test"
    assert payments[0].amount == Decimal("123.45")
    assert payments[0].status == "paid"
    db.close()


def test_forged_webhook_writes_nothing(client):
    payload = event_payload(data_object={
        "amount_total": 100,
        "payment_intent": "pi_forged",
        "metadata": {"user_id": "attacker"},
    })

    response = client.post(
        "/webhook/stripe",
        content=payload,
        headers={"stripe-signature": sign_payload(payload, secret="whsec_wrong")}
    )

    assert response.status_code == 400
    assert response.text.startswith("Webhook Error:")

    db = TestingSessionLocal()
    assert db.query(Payment).count() == 0
    db.close()


def test_signed_unrelated_event_writes_nothing(client):
    payload = event_payload("payment_intent.succeeded", {"id": "pi_123", "amount": 500})

    response = client.post(
        "/webhook/stripe",
        content=payload,
        headers={"stripe-signature": sign_payload(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}

    db = TestingSessionLocal()
    assert db.query(Payment).count() == 0
    db.close()
