from sqlalchemy import Boolean, Column, Date, DateTime, String, func

from admin_gateway.db import Base


class SubscriptionStatus:
    NONE = "none"
    SUBSCRIBED = "subscribed"


class Profile(Base):
    """Per-user profile kept beside the identity provider's account.

    Doubles as the email -> uid index for identity lookups and carries the
    user's subscription record.
    """

    __tablename__ = "profiles"

    user_id = Column(String(64), primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    phone_number = Column(String(32), unique=True, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    subscription_status = Column(
        String(20), default=SubscriptionStatus.NONE, nullable=False
    )
    subscription_start_date = Column(Date, nullable=True)
    subscription_end_date = Column(Date, nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<Profile(user_id='{self.user_id}', email='{self.email}')>"
