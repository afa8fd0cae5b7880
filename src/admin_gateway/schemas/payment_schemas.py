from datetime import date
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

COMPLETE = "COMPLETE"


class PayFastNotification(BaseModel):
    """Instant Transaction Notification posted by PayFast.

    Only the fields reconciliation reads are declared; the rest of the
    gateway payload is kept as extra attributes.
    """

    pf_payment_id: Optional[str] = None
    m_payment_id: Optional[str] = None
    payment_status: str
    email_address: Optional[str] = None
    item_name: Optional[str] = None
    amount_gross: Optional[str] = None
    billing_date: Optional[date] = None
    # Transmitted for subscriptions but not used to size the window.
    frequency: Optional[str] = None
    cycles: Optional[str] = None

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @field_validator("billing_date", mode="before")
    @classmethod
    def blank_billing_date(cls, v):
        # Form posts send absent values as empty strings.
        return v or None

    @property
    def is_complete(self) -> bool:
        return self.payment_status.upper() == COMPLETE


class CheckoutRequest(BaseModel):
    name_first: Optional[str] = Field(None, max_length=100)
    name_last: Optional[str] = Field(None, max_length=100)
    email_address: EmailStr
    m_payment_id: Optional[str] = Field(None, max_length=100)


class CheckoutResponse(BaseModel):
    action: str
    fields: Dict[str, str]


class CallbackAcknowledgement(BaseModel):
    status: str
    outcome: str
