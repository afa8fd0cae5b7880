from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from admin_gateway.db import Base


class ProcessedPayment(Base):
    """Ledger of gateway payment ids already applied to a subscription."""

    __tablename__ = "processed_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pf_payment_id = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String, nullable=False)
    payment_status = Column(String(32), nullable=False)
    amount_gross = Column(String(32), nullable=True)
    processed_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<ProcessedPayment(pf_payment_id='{self.pf_payment_id}')>"
