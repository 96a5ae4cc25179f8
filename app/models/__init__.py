from app.models.credential import Credential, CredentialType
from app.models.transaction import Transaction, TransactionType
from app.models.user import User

__all__ = [
    "User",
    "Credential",
    "CredentialType",
    "Transaction",
    "TransactionType",
]
