from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import Column, Integer, Numeric, String

from payment_relay.database import Base

PAID = "paid"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, index=True)
    stripe_payment_intent = Column(String)          # Stripe PaymentIntent ID
    amount = Column(Numeric(10, 2))
    status = Column(String)                         # always "paid"


@dataclass(frozen=True)
class PaymentRecord:
    user_id: Optional[str]
    payment_reference: Optional[str]
    amount: Optional[Decimal]
    status: str = PAID

    @classmethod
    def from_checkout_session(cls, session: Dict[str, Any]) -> "PaymentRecord":
        """Build the record for a completed checkout session object."""
        metadata = session.get("metadata") or {}
        amount_total = session.get("amount_total")
        amount = None if amount_total is None else Decimal(amount_total) / 100
        return cls(
            user_id=metadata.get("user_id"),
            payment_reference=session.get("payment_intent"),
            amount=amount,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "stripe_payment_intent": self.payment_reference,
            "amount": self.amount,
            "status": self.status,
        }
