from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models import Credential, User


def parse_user_id(user_id: str) -> Optional[UUID]:
    """Parse a user id sent by a client; None if it is not a UUID."""
    try:
        return UUID(str(user_id))
    except (TypeError, ValueError):
        return None


def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
    """Find user by id."""
    return db.query(User).filter(User.id == user_id).first()


def find_credentials(db: Session, user_id: UUID) -> list[Credential]:
    """All stored credentials owned by the user."""
    return db.query(Credential).filter(Credential.user_id == user_id).all()


def canonical_user_id(user_id: str) -> str:
    """History key for a client-sent id: canonical UUID text, or the id as sent."""
    parsed = parse_user_id(user_id)
    return str(parsed) if parsed else user_id
