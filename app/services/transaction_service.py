from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Transaction, TransactionType

logger = get_logger("transaction_service")


def record_transaction(
    db: Session,
    timestamp: datetime,
    amount: int,
    user_id: UUID,
    transaction_type: TransactionType = TransactionType.WITHDRAWAL,
) -> Transaction:
    """Write one ledger entry and commit it."""
    transaction = Transaction(
        user_id=user_id,
        amount=amount,
        transaction_type=transaction_type.value,
        created_at=timestamp,
    )
    db.add(transaction)
    db.commit()

    logger.info(
        "Transaction recorded",
        extra={"context": {"user_id": str(user_id), "amount": amount, "type": transaction_type.value}},
    )
    return transaction
