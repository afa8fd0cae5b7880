from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String

from admin_gateway.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailVerificationToken(Base):
    """One outstanding single-use proof of email ownership."""

    __tablename__ = "verify_email"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, index=True)
    verification_code = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_verify_email_email_code", "email", "verification_code"),
    )

    def __repr__(self):
        return f"<EmailVerificationToken(id={self.id}, email='{self.email}')>"
