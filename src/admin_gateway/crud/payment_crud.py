import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..exceptions import PersistenceError
from ..models.processed_payment import ProcessedPayment

logger = logging.getLogger(__name__)


async def is_payment_processed(db_session: AsyncSession, pf_payment_id: str) -> bool:
    try:
        result = await db_session.execute(
            select(ProcessedPayment.id).filter(
                ProcessedPayment.pf_payment_id == pf_payment_id
            )
        )
        return result.first() is not None
    except SQLAlchemyError as e:
        logger.error(f"Database error while checking payment {pf_payment_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to read payment ledger.") from e


async def record_payment(
    db_session: AsyncSession,
    pf_payment_id: str,
    email: str,
    payment_status: str,
    amount_gross: Optional[str] = None,
) -> ProcessedPayment:
    """Stages a ledger row; the unique payment id rejects a concurrent duplicate."""
    try:
        payment = ProcessedPayment(
            pf_payment_id=pf_payment_id,
            email=email,
            payment_status=payment_status,
            amount_gross=amount_gross,
        )
        db_session.add(payment)
        await db_session.flush()
        return payment
    except IntegrityError:
        # Already recorded by a concurrent delivery of the same notification.
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error while recording payment {pf_payment_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to record payment.") from e
